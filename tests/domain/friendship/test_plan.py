from __future__ import annotations

from friendsync.domain.friendship import plan_transition
from friendsync.domain.model import User
from tests.helpers.users import at


def test_plan_moves_user_between_groups() -> None:
    old_group = [User(id="y", number=5)]
    new_group = [User(id="x", number=7), User(id="z", number=7)]

    plan = plan_transition("x", at(1), old_group=old_group, new_group=new_group)

    assert plan.user_id == "x"
    assert plan.at == at(1)
    assert plan.friends == frozenset({"z"})
    assert plan.gains == ("z",)
    assert plan.losses == ("y",)
    assert plan.write_count == 3


def test_plan_for_empty_new_group_leaves_user_without_friends() -> None:
    plan = plan_transition(
        "x",
        at(1),
        old_group=[User(id="a", number=1), User(id="b", number=1)],
        new_group=[User(id="x", number=2)],
    )

    assert plan.friends == frozenset()
    assert plan.gains == ()
    assert plan.losses == ("a", "b")


def test_plan_never_lists_user_itself() -> None:
    me = User(id="x", number=2)

    plan = plan_transition("x", at(1), old_group=[me], new_group=[me])

    assert "x" not in plan.friends
    assert plan.gains == ()
    assert plan.losses == ()


def test_peer_seen_in_both_groups_only_gains() -> None:
    peer = User(id="p", number=2)

    plan = plan_transition("x", at(1), old_group=[peer], new_group=[peer])

    assert plan.gains == ("p",)
    assert plan.losses == ()
