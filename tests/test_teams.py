"""
Team registry: join codes, roster capacity, captaincy and archiving
"""
import pytest

from core.codes import CODE_ALPHABET
from core.exceptions import (
    AlreadyMember, DuplicateTeamName, LastMemberIsCaptain, NotTeamCaptain,
    NotTeamMember, TeamFull, TeamNotFound
)
from models.team_member import TeamRole
from services.team_registry import TeamRegistry


def test_create_team_makes_caller_captain(db_session, make_user):
    captain = make_user()

    team = TeamRegistry(db_session).create(captain.id, "Night Owls", country="IN")

    assert team.captain_id == captain.id
    assert team.current_members == 1
    assert team.max_members == 6
    assert len(team.join_code) == 8
    assert all(c in CODE_ALPHABET for c in team.join_code)
    assert team.archived_at is None


def test_duplicate_team_name_is_case_insensitive(db_session, make_user):
    registry = TeamRegistry(db_session)
    registry.create(make_user().id, "Night Owls")

    with pytest.raises(DuplicateTeamName) as exc_info:
        registry.create(make_user().id, "night owls")
    assert exc_info.value.kind == "DuplicateName"


def test_join_by_code_adds_member(db_session, make_user, make_team):
    team = make_team()
    player = make_user()
    registry = TeamRegistry(db_session)

    membership = registry.join_by_code(player.id, team.join_code.lower())

    assert membership.role == TeamRole.MEMBER
    assert registry.get_team(team.id).current_members == 2
    assert [t.id for t in registry.user_teams(player.id)] == [team.id]


def test_join_with_unknown_code(db_session, make_user):
    with pytest.raises(TeamNotFound):
        TeamRegistry(db_session).join_by_code(make_user().id, "NOPE2345")


def test_join_twice_is_rejected(db_session, make_user, make_team):
    team = make_team()
    player = make_user()
    registry = TeamRegistry(db_session)
    registry.join_by_code(player.id, team.join_code)

    with pytest.raises(AlreadyMember):
        registry.join_by_code(player.id, team.join_code)
    assert registry.get_team(team.id).current_members == 2


def test_seventh_member_is_rejected(db_session, make_user, make_team):
    """A team of six is full"""
    team = make_team(members=5)
    registry = TeamRegistry(db_session)
    assert team.current_members == 6

    with pytest.raises(TeamFull):
        registry.join_by_code(make_user().id, team.join_code)

    assert registry.get_team(team.id).current_members == 6
    assert registry.verify_counters(team.id)["consistent"] is True


class TestRemoveMember:

    def test_member_can_leave(self, db_session, make_user, make_team):
        captain = make_user()
        player = make_user()
        team = make_team(captain=captain)
        registry = TeamRegistry(db_session)
        registry.join_by_code(player.id, team.join_code)

        team = registry.remove_member(team.id, player.id, acting_user_id=player.id)

        assert team.current_members == 1
        assert registry.get_membership(team.id, player.id) is None

    def test_captain_can_remove_member(self, db_session, make_user, make_team):
        captain = make_user()
        player = make_user()
        team = make_team(captain=captain)
        registry = TeamRegistry(db_session)
        registry.join_by_code(player.id, team.join_code)

        team = registry.remove_member(team.id, player.id, acting_user_id=captain.id)

        assert team.current_members == 1

    def test_member_cannot_remove_others(self, db_session, make_user, make_team):
        team = make_team(members=2)
        registry = TeamRegistry(db_session)
        first, second = [m.user_id for m in registry.members(team.id) if m.role == TeamRole.MEMBER]

        with pytest.raises(NotTeamCaptain):
            registry.remove_member(team.id, second, acting_user_id=first)

    def test_remove_non_member(self, db_session, make_user, make_team):
        captain = make_user()
        team = make_team(captain=captain)

        with pytest.raises(NotTeamMember):
            TeamRegistry(db_session).remove_member(team.id, make_user().id, acting_user_id=captain.id)

    def test_captain_cannot_leave_with_members(self, db_session, make_user, make_team):
        captain = make_user()
        team = make_team(captain=captain, members=1)
        registry = TeamRegistry(db_session)

        with pytest.raises(LastMemberIsCaptain):
            registry.remove_member(team.id, captain.id, acting_user_id=captain.id)

        assert registry.get_team(team.id).current_members == 2

    def test_last_captain_leaving_archives_team(self, db_session, make_user, make_team):
        captain = make_user()
        team = make_team(captain=captain, name="Ghosts")
        registry = TeamRegistry(db_session)

        team = registry.remove_member(team.id, captain.id, acting_user_id=captain.id)

        assert team.is_archived
        assert team.current_members == 0
        assert registry.verify_counters(team.id)["consistent"] is True
        with pytest.raises(TeamNotFound):
            registry.join_by_code(make_user().id, team.join_code)
        # Archived names can be taken again
        assert registry.create(make_user().id, "Ghosts").id != team.id


def test_list_teams_skips_archived(db_session, make_user, make_team):
    captain = make_user()
    archived = make_team(captain=captain, name="Ghosts")
    active = make_team(name="Night Owls")
    registry = TeamRegistry(db_session)
    registry.remove_member(archived.id, captain.id, acting_user_id=captain.id)

    teams = registry.list_teams()

    assert [team.id for team in teams] == [active.id]
    assert registry.list_teams(skip=1) == []


class TestTransferCaptain:

    def test_transfer_then_old_captain_leaves(self, db_session, make_user, make_team):
        captain = make_user()
        player = make_user()
        team = make_team(captain=captain)
        registry = TeamRegistry(db_session)
        registry.join_by_code(player.id, team.join_code)

        team = registry.transfer_captain(team.id, player.id, acting_user_id=captain.id)
        assert team.captain_id == player.id

        team = registry.remove_member(team.id, captain.id, acting_user_id=captain.id)
        assert team.current_members == 1
        assert team.captain_id == player.id
        assert registry.verify_counters(team.id)["captains"] == 1

    def test_only_captain_can_transfer(self, db_session, make_user, make_team):
        player = make_user()
        team = make_team()
        registry = TeamRegistry(db_session)
        registry.join_by_code(player.id, team.join_code)

        with pytest.raises(NotTeamCaptain):
            registry.transfer_captain(team.id, player.id, acting_user_id=player.id)

    def test_transfer_to_outsider(self, db_session, make_user, make_team):
        captain = make_user()
        team = make_team(captain=captain)

        with pytest.raises(NotTeamMember):
            TeamRegistry(db_session).transfer_captain(team.id, make_user().id, acting_user_id=captain.id)
