import asyncio
import json
import logging

from journeymap.server.relay.completion import (
    INVALID_JSON_REPLY,
    SERVICE_ERROR_REPLY,
    CompletionService,
    parse_json_reply,
    strip_code_fences,
)
from journeymap.server.relay.prompts import (
    journey_document_prompt,
    storyboard_prompt,
    structured_scenario_prompt,
)

from fakes import FakeOpenAI

FENCED = """```json
[{"touchpoints": "Alarm", "nodes info": [{"nodeId": "001", "row": 0, "col": 0, "nodeSubId": 0}]}]
```"""


class TestCompletionParsing:

    def test_strip_code_fences(self):
        assert strip_code_fences(FENCED).startswith("[{")
        assert strip_code_fences("  plain  ") == "plain"

    def test_valid_reply_is_pretty_printed(self):
        text = parse_json_reply(FENCED)
        assert json.loads(text)[0]["touchpoints"] == "Alarm"
        assert "\n  " in text

    def test_invalid_reply(self, caplog):
        caplog.set_level(logging.WARNING)
        assert parse_json_reply("Sure! Here is your JSON:") == INVALID_JSON_REPLY
        assert "not valid JSON" in caplog.text


class TestCompletionService:

    def test_complete_document(self):
        client = FakeOpenAI([FENCED])
        service = CompletionService(model="gpt-4o", client=client)

        text = asyncio.run(service.complete_document("Two commuters take a taxi"))

        assert json.loads(text)[0]["nodes info"][0]["nodeId"] == "001"
        call = client.calls[0]
        assert call["model"] == "gpt-4o"
        assert "Two commuters take a taxi" in call["messages"][0]["content"]
        assert "temperature" not in call

    def test_temperature_is_forwarded(self):
        client = FakeOpenAI(["{}"])
        service = CompletionService(client=client, temperature=0.8)
        asyncio.run(service.structure_scenario("[]"))
        assert client.calls[0]["temperature"] == 0.8

    def test_storyboard_uses_its_own_temperature(self):
        client = FakeOpenAI(['{"storyboards": []}'])
        service = CompletionService(client=client)

        text = asyncio.run(service.storyboard("x"))

        assert json.loads(text) == {"storyboards": []}
        assert client.calls[0]["temperature"] == 0.7

    def test_empty_reply_is_invalid_json(self):
        service = CompletionService(client=FakeOpenAI([None]))
        assert asyncio.run(service.complete_document("x")) == INVALID_JSON_REPLY

    def test_service_error(self, caplog):
        service = CompletionService(client=FakeOpenAI(error=RuntimeError("rate limited")))
        caplog.set_level(logging.ERROR)

        assert asyncio.run(service.complete_document("x")) == SERVICE_ERROR_REPLY
        assert "OpenAI call failed" in caplog.text


class TestPrompts:

    def test_document_prompt_mentions_schema(self):
        prompt = journey_document_prompt("A user orders coffee")
        assert "A user orders coffee" in prompt
        assert '"nodes info"' in prompt
        assert "nodeSubId" in prompt

    def test_structured_prompt_embeds_data(self):
        prompt = structured_scenario_prompt('[{"touchpoints": "Alarm"}]')
        assert '"userExperience"' in prompt
        assert '[{"touchpoints": "Alarm"}]' in prompt

    def test_storyboard_prompt(self):
        prompt = storyboard_prompt("A user orders coffee")
        assert "A user orders coffee" in prompt
        assert '"keyInteractions"' in prompt
        assert "at most 5 scenes" in prompt
