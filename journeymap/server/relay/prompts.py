"""Prompt builders for the relay requests."""
from __future__ import annotations

import textwrap

_DOCUMENT_EXAMPLE = """\
[
  {
    "touchpoints": "Smartphone alarm screen",
    "nodes info": [
      {"nodeId": "001", "row": 0, "col": 0, "nodeSubId": 0},
      {"nodeId": "002", "row": 0, "col": 0, "nodeSubId": 0}
    ]
  },
  {
    "touchpoints": "Taxi interior screen",
    "nodes info": [
      {"nodeId": "001", "row": 1, "col": 1, "nodeSubId": 1},
      {"nodeId": "002", "row": 1, "col": 1, "nodeSubId": 1}
    ]
  }
]"""


def journey_document_prompt(scenario: str) -> str:
    """Ask for the touchpoint Document describing *scenario*."""
    return textwrap.dedent(
        """\
        Identify the design touchpoints users meet along their journey in the
        scenario below and convert it into structured JSON.
        Output only JSON inside a ```json ... ``` code block and nothing else.

        - Scenario: {scenario}

        A design touchpoint is a concrete screen, object or space the user
        actually encounters (e.g. "smartphone alarm screen", "lobby kiosk").

        Rules:
        1. The output is an array; each item is one moment in time (one row).
        2. Each row has:
           - "touchpoints": a short touchpoint name; never repeat one.
           - "nodes info": an array of user nodes with
             - "nodeId": "001", "002", ... one per user
             - "row": differs when users branch at the same moment
             - "col": time axis, starting at 0 and increasing by one
             - "nodeSubId": step number within that user's journey from 0
        3. Give every user in the scenario a unique nodeId.
        4. Fill gaps in the scenario with natural assumptions so every user's
           path is connected.

        Example:
        {example}
        """
    ).format(scenario=scenario, example=_DOCUMENT_EXAMPLE)


def structured_scenario_prompt(document_json: str) -> str:
    """Ask for the context / artifact / userExperience summary of a Document."""
    return textwrap.dedent(
        """\
        The JSON below lists the touchpoints of a user journey.
        Output only JSON inside a ```json ... ``` code block with this shape:

        {{
          "context": [physical places and environment elements],
          "artifact": [products, UIs and systems users interact with],
          "userExperience": {{"001": "step by step journey of user 001", ...}}
        }}

        Rules:
        - context lists physical spaces or environment elements
        - artifact lists interfaces, screens, apps and products
        - userExperience summarizes each user's journey in time order as one string
        - the output must be valid JSON

        Data:
        {data}
        """
    ).format(data=document_json)


def storyboard_prompt(scenario: str) -> str:
    """Ask for at most five storyboard scenes covering *scenario*."""
    return textwrap.dedent(
        """\
        Below is a user service scenario. Build a storyboard from it.

        Output format:
        {{
          "storyboards": [
            {{
              "sceneId": 1,
              "title": "scene title",
              "keyInteractions": ["key user action 1", "key user action 2"]
            }},
            ...
          ]
        }}

        Rules:
        - Create at most 5 scenes.
        - Order the scenes in time.
        - Output valid JSON only, without markdown.

        Scenario:
        {scenario}
        """
    ).format(scenario=scenario)
