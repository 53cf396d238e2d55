"""Tests for audience resolution against the club store."""

from unittest.mock import Mock

import pytest

from app.audience import AudienceResolutionError, AudienceResolver
from app.persistence.repositories import AudienceRepository, RsvpRecord
from tests.helpers import add_coach, add_event, add_group, add_profile, add_rider, add_rsvp


@pytest.fixture
def club(session):
    """Two groups with adults, coaches, minors and guardians.

    group-a: adult ``ada`` (home group), coach ``cam``, minors ``mia``
    (guardians ``pam`` and ``pat``) and ``max`` (guardian ``pam``)
    group-b: adult ``bob``, coach ``cam`` (coaches both groups), minor
    ``bea`` (guardian ``pia``)
    unrelated: ``una`` (no group), admin ``adm``, super admin ``sue``, coach
    ``cal`` with no assignment
    """
    add_group(session, "group-a")
    add_group(session, "group-b")
    add_profile(session, "ada", roles=["rider"], group_id="group-a")
    add_profile(session, "bob", roles=["rider"], group_id="group-b")
    add_profile(session, "cam", roles=["roll_model"])
    add_profile(session, "cal", roles=["roll_model"])
    add_profile(session, "pam", roles=["parent"])
    add_profile(session, "pat", roles=["parent"])
    add_profile(session, "pia", roles=["parent"])
    add_profile(session, "una", roles=["parent"])
    add_profile(session, "adm", roles=["admin"])
    add_profile(session, "sue", roles=["super_admin", "parent"])
    add_coach(session, "cam", "group-a")
    add_coach(session, "cam", "group-b")
    add_rider(session, "mia", "group-a", guardians=["pam", "pat"])
    add_rider(session, "max", "group-a", guardians=["pam"])
    add_rider(session, "bea", "group-b", guardians=["pia"])
    return session


@pytest.fixture
def resolver(club):
    return AudienceResolver(AudienceRepository(club, batch_size=2))


class TestGroupAudience:
    def test_group_reaches_adults_coaches_and_guardians(self, resolver):
        audience = resolver.resolve("group", "group-a")

        assert audience == {"ada", "cam", "pam", "pat"}
        assert "una" not in audience

    def test_group_with_coach_parent_and_adult_paths(self, club):
        # One user is coach, guardian and adult member of the same group
        add_profile(club, "zed", roles=["roll_model", "parent", "rider"], group_id="group-a")
        add_coach(club, "zed", "group-a")
        add_rider(club, "zoe", "group-a", guardians=["zed"])

        audience = AudienceResolver(AudienceRepository(club)).resolve("group", "group-a")

        assert audience == {"ada", "cam", "pam", "pat", "zed"}

    def test_resolution_is_repeatable(self, resolver):
        first = resolver.resolve("group", "group-b")
        second = resolver.resolve("group", "group-b")
        assert first == second == {"bob", "cam", "pia"}

    def test_empty_group(self, club, resolver):
        add_group(club, "group-c")
        assert resolver.resolve("group", "group-c") == set()


class TestAllAudience:
    def test_everyone(self, resolver):
        assert resolver.resolve("all", None) == {
            "ada", "bob", "cam", "cal", "pam", "pat", "pia", "una", "adm", "sue",
        }


class TestEventAudiences:
    def test_event_all_unions_linked_groups(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-a", "group-b"])

        assert resolver.resolve("event_all", "event-1") == {
            "ada", "bob", "cam", "pam", "pat", "pia",
        }

    def test_event_all_without_groups_uses_coaches_and_admins(self, club, resolver):
        add_event(club, "event-1")

        assert resolver.resolve("event_all", "event-1") == {"cam", "cal", "adm", "sue"}

    def test_include_admins_folds_admins_into_grouped_event(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-b"])

        assert resolver.resolve("event_all", "event-1") == {"bob", "cam", "pia"}
        assert resolver.resolve("event_all", "event-1", include_admins=True) == {
            "bob", "cam", "pia", "adm", "sue",
        }

    def test_include_admins_default_from_constructor(self, club):
        add_event(club, "event-1", group_ids=["group-b"])
        resolver = AudienceResolver(AudienceRepository(club), include_admins=True)

        assert {"adm", "sue"} <= resolver.resolve("event_all", "event-1")
        assert not {"adm", "sue"} & resolver.resolve("event_all", "event-1", include_admins=False)

    def test_event_rsvpd(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-a"])
        add_rsvp(club, "event-1", "ada")
        add_rsvp(club, "event-1", "pam", rider_id="mia", status="no")

        assert resolver.resolve("event_rsvpd", "event-1") == {"ada", "pam"}

    def test_event_not_rsvpd_removes_self_responders(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-a"])
        add_rsvp(club, "event-1", "ada")
        add_rsvp(club, "event-1", "cam", status="maybe")

        assert resolver.resolve("event_not_rsvpd", "event-1") == {"pam", "pat"}

    def test_guardian_kept_while_any_minor_unanswered(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-a"])
        # pam answered for mia only; max is still waiting
        add_rsvp(club, "event-1", "pam", rider_id="mia")

        audience = resolver.resolve("event_not_rsvpd", "event-1")

        assert "pam" in audience
        # pat's only minor has an answer
        assert "pat" not in audience

    def test_guardian_dropped_when_all_minors_answered(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-a"])
        add_rsvp(club, "event-1", "pam", rider_id="mia")
        add_rsvp(club, "event-1", "pat", rider_id="max")

        assert resolver.resolve("event_not_rsvpd", "event-1") == {"ada", "cam"}

    def test_event_not_rsvpd_without_groups(self, club, resolver):
        add_event(club, "event-1")
        add_rsvp(club, "event-1", "cal")

        assert resolver.resolve("event_not_rsvpd", "event-1") == {"cam", "adm", "sue"}

    def test_event_not_rsvpd_with_admins(self, club, resolver):
        add_event(club, "event-1", group_ids=["group-b"])
        add_rsvp(club, "event-1", "adm")

        assert resolver.resolve("event_not_rsvpd", "event-1", include_admins=True) == {
            "bob", "cam", "pia", "sue",
        }

    def test_unknown_event_has_no_linked_groups(self, resolver):
        assert resolver.resolve("event_all", "missing") == {"cam", "cal", "adm", "sue"}
        assert resolver.resolve("event_rsvpd", "missing") == set()


class TestTargetValidation:
    def test_unknown_target_type(self, resolver):
        with pytest.raises(AudienceResolutionError) as exc_info:
            resolver.resolve("region", "north")

        assert exc_info.value.target_type == "region"
        assert exc_info.value.target_id == "north"

    @pytest.mark.parametrize("target_type", ["group", "event_all", "event_rsvpd", "event_not_rsvpd"])
    def test_missing_target_id_is_empty(self, resolver, target_type):
        assert resolver.resolve(target_type, None) == set()


class TestFilterAccepted:
    def test_pending_invites_removed(self, club, resolver):
        add_profile(club, "new", roles=["parent"], invite_status="pending")

        assert resolver.filter_accepted({"ada", "new", "ghost"}) == {"ada"}

    def test_empty_input_skips_query(self):
        repository = Mock(spec=AudienceRepository)
        assert AudienceResolver(repository).filter_accepted([]) == set()
        repository.accepted_ids.assert_not_called()


class TestTraversalOrder:
    def test_result_does_not_depend_on_query_order(self):
        """The same relationships returned in a different order give the same set."""

        def make_repository(order):
            repository = Mock(spec=AudienceRepository)
            repository.event_group_ids.return_value = set(order(["g1", "g2"]))
            repository.adult_members.return_value = set(order(["a1", "a2"]))
            repository.coaches.return_value = set(order(["c1", "a1"]))
            repository.minors_in.return_value = set(order(["m1", "m2"]))
            repository.guardians_of.return_value = set(order(["p1", "c1"]))
            repository.event_rsvps.return_value = order(
                [RsvpRecord("a2", None, "yes"), RsvpRecord("p1", "m1", "yes")]
            )
            return repository

        forward = AudienceResolver(make_repository(list))
        backward = AudienceResolver(make_repository(lambda items: list(reversed(items))))

        for target_type in ("event_all", "event_not_rsvpd"):
            assert forward.resolve(target_type, "e1") == backward.resolve(target_type, "e1")
