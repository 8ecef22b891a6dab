import asyncio

from journeymap.core.AnimationPlayer import AnimationPlayer
from journeymap.core.Document import import_document
from journeymap.core.GridModel import GridModel
from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import PlayerState

SCENARIO = (
    '[{"touchpoints":"A","nodes info":[{"nodeId":"001","row":0,"col":0,"nodeSubId":0}]},'
    '{"touchpoints":"B","nodes info":[{"nodeId":"001","row":1,"col":1,"nodeSubId":1}]}]'
)


def _sequence(n, group="001"):
    return [GridNode(i % 3, i, "#7BFF00", group, i) for i in range(n)]


class TestAnimationPlayer:

    def setup_method(self):
        self.model = GridModel(cols=20)
        self.player = AnimationPlayer(self.model, interval=0.001)
        self.ticks = []
        self.player.on_tick(self.ticks.append)

    def test_plays_every_node_in_input_order(self):
        nodes = [
            GridNode(2, 5, "#7BFF00", "001", 3),
            GridNode(0, 0, "#7BFF00", "001", 0),
            GridNode(1, 2, "#FFFF61", "002", 0),
        ]

        async def run_test():
            self.player.play(nodes)
            assert self.player.state == PlayerState.PLAYING
            assert self.model.nodes == []
            await self.player.wait()

        asyncio.run(run_test())

        assert [n.key for n in self.model.nodes] == [n.key for n in nodes]
        assert len(self.ticks) == 3
        assert self.model.row_count == 3
        assert self.player.state == PlayerState.IDLE

    def test_one_node_per_tick(self):
        async def run_test():
            self.player.interval = 0.1
            self.player.play(_sequence(4))
            await asyncio.sleep(0.15)
            seen = len(self.model.nodes)
            await self.player.wait()
            return seen

        seen = asyncio.run(run_test())

        assert seen == 1
        assert len(self.model.nodes) == 4

    def test_play_clears_existing_nodes(self):
        self.model.append(GridNode(0, 9, "#972AFF", "042", 0))

        async def run_test():
            await self.player.play(_sequence(2))

        asyncio.run(run_test())

        assert [n.group_id for n in self.model.nodes] == ["001", "001"]

    def test_restart_does_not_interleave(self):
        """A new play() while playing never yields more than n insertions."""
        first = _sequence(5, group="001")
        second = _sequence(5, group="002")

        async def run_test():
            self.player.interval = 0.01
            self.player.play(first)
            await asyncio.sleep(0.025)
            self.player.play(second)
            await self.player.wait()
            # give a stale task every chance to wake up
            await asyncio.sleep(0.05)

        asyncio.run(run_test())

        assert len(self.model.nodes) == 5
        assert {n.group_id for n in self.model.nodes} == {"002"}

    def test_restart_before_first_tick(self):
        async def run_test():
            self.player.play(_sequence(3, group="001"))
            self.player.play(_sequence(3, group="002"))
            await self.player.wait()
            await asyncio.sleep(0.01)

        asyncio.run(run_test())

        assert len(self.ticks) == 3
        assert [n.group_id for n in self.model.nodes] == ["002"] * 3

    def test_stop_cancels(self):
        async def run_test():
            self.player.interval = 0.05
            self.player.play(_sequence(4))
            await asyncio.sleep(0.01)
            self.player.stop()
            await asyncio.sleep(0.1)

        asyncio.run(run_test())

        assert self.model.nodes == []
        assert self.player.state == PlayerState.IDLE

    def test_finished_listener(self):
        finished = []
        self.player.on_finished(lambda: finished.append(True))

        async def run_test():
            await self.player.play(_sequence(2))

        asyncio.run(run_test())

        assert finished == [True]

    def test_replay_uses_last_queue(self):
        async def run_test():
            assert self.player.replay() is None
            await self.player.play(_sequence(2))
            self.model.add_node(0, 10)
            await self.player.replay()

        asyncio.run(run_test())

        assert len(self.model.nodes) == 2

    def test_played_nodes_are_copies(self):
        nodes = _sequence(1)

        async def run_test():
            await self.player.play(nodes)

        asyncio.run(run_test())
        self.model.move_node(self.model.nodes[0], 0, 2)

        assert (nodes[0].row, nodes[0].col) == (0, 0)

    def test_imported_scenario(self):
        """Two-row scenario ends with one connected path of two nodes."""
        imported = import_document(SCENARIO)

        async def run_test():
            self.model.replace(imported.row_labels, [])
            await self.player.play(imported.nodes)

        asyncio.run(run_test())

        assert len(self.model.nodes) == 2
        assert {n.group_id for n in self.model.nodes} == {"001"}
        assert sorted(n.sequence_index for n in self.model.nodes) == [0, 1]
        assert self.model.row_count == 2
        paths = self.model.paths()
        assert list(paths) == ["001"]
        assert [n.sequence_index for n in paths["001"]] == [0, 1]

    def test_new_groups_do_not_reuse_queued_ids(self):
        async def run_test():
            self.player.interval = 0.05
            self.player.play(_sequence(2, group="001"))
            return self.model.add_node(0, 15)

        node = asyncio.run(run_test())

        assert node.group_id == "002"
