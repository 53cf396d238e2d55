"""Resolve a notification target to the set of users it reaches.

Audiences are built by walking the club's relationship data:

- group: adults whose home group it is, its coaches, and the guardians of
  minors riding in it
- event_all: the group audience of every group linked to the event, or the
  ungrouped pool (coaches and administrators) when no group is linked
- event_not_rsvpd: event_all without adults who answered for themselves;
  a guardian stays while any guarded minor in the linked groups has not
  answered
- event_rsvpd: whoever submitted an RSVP row for the event

Results are plain sets, so a member reachable through several paths is
counted once. Invitation and preference filtering happen afterwards.
"""

from typing import Iterable, Optional, Set

from app.domain.models import ADMIN_ROLES, COACH_ROLES, TargetType
from app.logging import get_logger
from app.persistence.repositories import AudienceRepository

from .exceptions import AudienceResolutionError

logger = get_logger(__name__, component="audience")


class AudienceResolver:
    """Resolve ``(target_type, target_id)`` pairs against the store.

    Args:
        repository: Relationship queries for the current session
        include_admins: Fold administrators into grouped event audiences
            (event_all and event_not_rsvpd) unless overridden per call
    """

    def __init__(self, repository: AudienceRepository, include_admins: bool = False):
        self.repository = repository
        self.include_admins = include_admins

    def resolve(
        self,
        target_type: str,
        target_id: Optional[str],
        include_admins: Optional[bool] = None,
    ) -> Set[str]:
        """Raw audience for a target, before acceptance and preference filters.

        Raises:
            AudienceResolutionError: If the target type is unknown
        """
        try:
            target = TargetType(target_type)
        except ValueError as e:
            raise AudienceResolutionError(
                f"Unknown target type: {target_type}", target_type, target_id
            ) from e

        with_admins = self.include_admins if include_admins is None else include_admins

        if target is TargetType.ALL:
            audience = self.repository.all_profile_ids()
        elif not target_id:
            logger.warning(
                f"Target {target.value} has no target id; audience is empty",
                extra={"event": "audience.target.missing_id", "target_type": target.value},
            )
            audience = set()
        elif target is TargetType.GROUP:
            audience = self.group_audience([target_id])
        elif target is TargetType.EVENT_RSVPD:
            audience = {rsvp.user_id for rsvp in self.repository.event_rsvps(target_id)}
        elif target is TargetType.EVENT_ALL:
            audience = self._event_all(target_id, with_admins)
        else:
            audience = self._event_not_rsvpd(target_id, with_admins)

        logger.debug(
            f"Resolved {len(audience)} recipient(s) for {target.value}",
            extra={
                "event": "audience.resolved",
                "target_type": target.value,
                "target_id": target_id,
                "audience_size": len(audience),
            },
        )
        return audience

    def group_audience(self, group_ids: Iterable[str]) -> Set[str]:
        """Adults, coaches and guardians of minors across ``group_ids``."""
        group_ids = set(group_ids)
        if not group_ids:
            return set()

        audience = self.repository.adult_members(group_ids)
        audience |= self.repository.coaches(group_ids)

        minors = self.repository.minors_in(group_ids)
        if minors:
            audience |= self.repository.guardians_of(minors)

        return audience

    def ungrouped_pool(self) -> Set[str]:
        """Coaches and administrators, used for events without linked groups."""
        return self.repository.role_holders(COACH_ROLES | ADMIN_ROLES)

    def filter_accepted(self, user_ids: Iterable[str]) -> Set[str]:
        """Keep only users whose invitation has been accepted."""
        user_ids = set(user_ids)
        if not user_ids:
            return set()
        return self.repository.accepted_ids(user_ids)

    def _event_all(self, event_id: str, include_admins: bool) -> Set[str]:
        group_ids = self.repository.event_group_ids(event_id)
        if not group_ids:
            return self.ungrouped_pool()

        audience = self.group_audience(group_ids)
        if include_admins:
            audience |= self.repository.role_holders(ADMIN_ROLES)
        return audience

    def _event_not_rsvpd(self, event_id: str, include_admins: bool) -> Set[str]:
        rsvps = self.repository.event_rsvps(event_id)
        self_responded = {rsvp.user_id for rsvp in rsvps if not rsvp.rider_id}
        responded_minors = {rsvp.rider_id for rsvp in rsvps if rsvp.rider_id}

        group_ids = self.repository.event_group_ids(event_id)
        if not group_ids:
            return self.ungrouped_pool() - self_responded

        adults = self.repository.adult_members(group_ids) | self.repository.coaches(group_ids)
        if include_admins:
            adults |= self.repository.role_holders(ADMIN_ROLES)
        adults -= self_responded

        waiting_minors = self.repository.minors_in(group_ids) - responded_minors
        guardians = self.repository.guardians_of(waiting_minors) if waiting_minors else set()

        return adults | guardians
