import asyncio
import json

from journeymap.server.config import Settings
from journeymap.server.relay.completion import INVALID_JSON_REPLY, CompletionService
from journeymap.server.relay.relay_events import (
    COMPLETION,
    GRID_UPDATED,
    NODE_PLACED,
    STORYBOARD_RESULT,
    STRUCTURED_RESULT,
    pack_completion,
    unpack_completion,
    unpack_prompt,
)
from journeymap.server.relay.socket_server import RelayServer
from journeymap.server.state import SessionState

from fakes import FakeOpenAI, RecordingEmitter

DOC_JSON = '[{"touchpoints": "Alarm", "nodes info": [{"nodeId": "001", "row": 0, "col": 0, "nodeSubId": 0}]}]'
DOC_REPLY = "```json\n" + DOC_JSON + "\n```"
SCENARIO_REPLY = '{"context": ["Street"], "artifact": ["Taxi app"], "userExperience": {"001": "Wakes up"}}'
STORYBOARD_REPLY = json.dumps({"storyboards": [
    {"sceneId": i, "title": f"Scene {i}", "keyInteractions": ["tap"]} for i in range(1, 7)
]})


class TestRelayEvents:

    def test_prompt_shapes(self):
        assert unpack_prompt("hello") == ("hello", None)
        assert unpack_prompt({"prompt": "hello", "requestId": 7}) == ("hello", "7")
        assert unpack_prompt(None) == ("", None)

    def test_completion_shapes(self):
        assert pack_completion("[]", None) == "[]"
        assert pack_completion("[]", "abc") == {"text": "[]", "requestId": "abc"}
        assert unpack_completion({"text": "[]", "requestId": "abc"}) == ("[]", "abc")
        assert unpack_completion("[oops]") == ("[oops]", None)


class TestRelayServer:

    def setup_method(self):
        self.session = SessionState(Settings(tick_seconds=0.001))
        self.openai = FakeOpenAI([DOC_REPLY, SCENARIO_REPLY])
        self.relay = RelayServer(self.session, CompletionService(client=self.openai))
        self.emit = RecordingEmitter()
        self.relay.sio.emit = self.emit

    def test_initial_prompt_plain_text(self):
        asyncio.run(self.relay.initial_prompt("sid-1", "Commuter takes a taxi"))

        event, data, kwargs = self.emit.events[0]
        assert event == COMPLETION
        assert kwargs["to"] == "sid-1"
        assert json.loads(data)[0]["touchpoints"] == "Alarm"
        assert self.session.table.user_ids() == ["001"]

    def test_initial_prompt_echoes_request_id(self):
        asyncio.run(self.relay.initial_prompt("sid-1", {"prompt": "x", "requestId": "r1"}))

        _, data, _ = self.emit.events[0]
        assert data["requestId"] == "r1"
        assert json.loads(data["text"])[0]["nodes info"][0]["nodeId"] == "001"

    def test_initial_prompt_bad_reply(self):
        self.openai.chat.completions.replies = ["I cannot do that"]

        asyncio.run(self.relay.initial_prompt("sid-1", "x"))

        assert self.emit.events[0][1] == INVALID_JSON_REPLY
        assert self.session.table.rows == []

    def test_structured_prompt(self):
        self.openai.chat.completions.replies = [SCENARIO_REPLY]

        asyncio.run(self.relay.structured_prompt("sid-2", "[]"))

        event, data, kwargs = self.emit.events[0]
        assert event == STRUCTURED_RESULT
        assert kwargs["to"] == "sid-2"
        assert self.session.scenario.artifact == ["Taxi app"]

    def test_convert_storyboard(self):
        self.openai.chat.completions.replies = [STORYBOARD_REPLY]

        asyncio.run(self.relay.convert_storyboard("sid-3", {"prompt": "Commuter takes a taxi", "requestId": "r9"}))

        event, data, kwargs = self.emit.events[0]
        assert event == STORYBOARD_RESULT
        assert kwargs["to"] == "sid-3"
        assert data["requestId"] == "r9"
        assert [s["sceneId"] for s in data["storyboards"]] == [1, 2, 3, 4, 5]
        assert self.session.storyboard.storyboards[0].title == "Scene 1"
        assert self.openai.calls[0]["temperature"] == 0.7
        assert "Commuter takes a taxi" in self.openai.calls[0]["messages"][0]["content"]

    def test_convert_storyboard_failure(self):
        self.openai.chat.completions.replies = ["no storyboard today"]

        asyncio.run(self.relay.convert_storyboard("sid-3", "x"))

        event, data, _ = self.emit.events[0]
        assert event == STORYBOARD_RESULT
        assert data == {"error": INVALID_JSON_REPLY}
        assert self.session.storyboard is None

    def test_node_placed_is_rebroadcast_to_others(self):
        payload = {"nodeId": "001", "row": 0, "col": 0, "nodeSubId": 0, "color": "#7BFF00"}

        asyncio.run(self.relay.node_placed("sid-1", payload))

        assert self.emit.events == [(NODE_PLACED, payload, {"skip_sid": "sid-1"})]

    def test_model_placements_are_broadcast(self):
        async def run_test():
            node = self.session.model.add_node(0, 0)
            await asyncio.sleep(0)
            return node

        node = asyncio.run(run_test())

        assert self.emit.named(NODE_PLACED) == [(NODE_PLACED, node.to_descriptor(), {})]

    def test_placement_without_loop_is_not_broadcast(self):
        self.session.model.add_node(0, 0)
        assert self.emit.events == []

    def test_playback_emits_grid_updates(self):
        async def run_test():
            self.session.import_document(DOC_JSON)
            await self.session.player.wait()
            await asyncio.sleep(0)

        asyncio.run(run_test())

        reasons = [data["reason"] for _, data, _ in self.emit.named(GRID_UPDATED)]
        assert reasons == ["playback", "playbackDone"]
