"""
Tests for the undo history arena and observation packing.
"""

import numpy as np
import pytest

from water_sort.sort_core.config_loader import load_config
from water_sort.sort_core.container import Container
from water_sort.sort_core.state_snapshot import (
    EMPTY_SLOT,
    ContainerArena,
    SnapshotBuilder,
    SnapshotHistory,
    color_totals,
)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def containers():
    return [
        Container(2, [0, 1], container_id=0),
        Container(2, [1, 0], container_id=1),
        Container(2, [], container_id=2),
    ]


class TestArena:
    """Test version interning."""

    def test_identical_states_share_an_entry(self):
        arena = ContainerArena()

        a = arena.intern((0, 1))
        b = arena.intern((0, 1))

        assert a == b
        assert len(arena) == 1
        assert arena[a] == (0, 1)


class TestSnapshotHistory:
    """Test push, pop and restore."""

    def test_initial_snapshot_cannot_be_popped(self, containers):
        history = SnapshotHistory()
        history.push_initial(containers)

        assert history.pop() is None
        assert history.depth == 1

    def test_push_reuses_unchanged_versions(self, containers):
        history = SnapshotHistory()
        initial = history.push_initial(containers)

        containers[0].pour_to(containers[2])
        snapshot = history.push(containers, 1, changed=(0, 2))

        assert snapshot.versions[1] == initial.versions[1]
        assert snapshot.versions[0] != initial.versions[0]
        assert len(history.arena) == 5

    def test_pouring_back_and_forth_does_not_grow_arena(self, containers):
        history = SnapshotHistory()
        history.push_initial(containers)

        containers[0].pour_to(containers[2])
        history.push(containers, 1, changed=(0, 2))
        size = len(history.arena)
        containers[2].pour_to(containers[0])
        history.push(containers, 2, changed=(0, 2))

        assert len(history.arena) == size

    def test_pop_restores_previous_state(self, containers):
        history = SnapshotHistory()
        history.push_initial(containers)
        before = tuple(c.state for c in containers)

        containers[0].pour_to(containers[2])
        history.push(containers, 1, changed=(0, 2))
        snapshot = history.pop()
        history.restore(snapshot, containers)

        assert tuple(c.state for c in containers) == before
        assert snapshot.move_count == 0

    def test_rewind(self, containers):
        history = SnapshotHistory()
        history.push_initial(containers)
        before = history.states(history.initial)

        for move, (src, dst) in enumerate([(0, 2), (1, 2), (0, 1)], start=1):
            assert containers[src].pour_to(containers[dst]) == 1
            history.push(containers, move)

        snapshot = history.rewind()

        assert history.depth == 1
        assert history.states(snapshot) == before


class TestSnapshotBuilder:
    """Test fixed-size observation arrays."""

    def test_padding_and_mask(self, config, containers):
        board = SnapshotBuilder(config).build(containers, move_count=2, moves_remaining=3)
        obs = board.to_obs_dict()
        max_cont = config.observation.max_containers
        max_cap = config.observation.max_capacity

        assert obs["units"].shape == (max_cont, max_cap)
        assert obs["units"][0, :2].tolist() == [0, 1]
        assert obs["units"][0, 2] == EMPTY_SLOT
        assert obs["fill"][:3].tolist() == [2, 2, 0]
        assert obs["container_mask"].sum() == 3
        assert obs["container_mask"].dtype == np.int8
        assert int(obs["move_count"]) == 2
        assert int(obs["moves_remaining"]) == 3

    def test_too_many_containers_rejected(self, config):
        too_many = [Container(2) for _ in range(config.observation.max_containers + 1)]

        with pytest.raises(ValueError):
            SnapshotBuilder(config).build(too_many, move_count=0)

    def test_color_totals(self, containers):
        assert color_totals(c.state for c in containers) == {0: 2, 1: 2}

    def test_color_totals_missing_color_is_zero(self):
        totals = color_totals([(0, 0, 1), (2,), ()])

        assert totals[3] == 0
        assert totals.most_common(1) == [(0, 2)]
