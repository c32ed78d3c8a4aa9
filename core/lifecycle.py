"""
Lifecycle state machines for memberships, job postings and applications.

Each machine is a fixed transition table. ``ensure`` raises
InvalidTransitionError for anything not in the table and returns the target
state otherwise, so callers assign the return value.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Mapping, TypeVar

from core.exceptions import InvalidTransitionError
from database.models.applications import ApplicationStatus
from database.models.companies import MemberStatus
from database.models.jobs import JobStatus

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class StateMachine(Generic[S]):
    """
    A finite-state machine over one status enum.

    Attributes:
        name: Label used in error messages
        transitions: Allowed targets keyed by current state
        blocked_messages: Specific error text for a current state that
            admits no transition, used instead of the generic message
    """

    name: str
    transitions: Mapping[S, frozenset[S]]
    blocked_messages: Mapping[S, str] = field(default_factory=dict)

    def can(self, current: S, target: S) -> bool:
        return target in self.transitions.get(current, frozenset())

    def ensure(self, current: S, target: S) -> S:
        """
        Validate a transition.

        Raises:
            InvalidTransitionError: If ``current -> target`` is not allowed
        """
        if self.can(current, target):
            return target
        message = self.blocked_messages.get(current)
        if message is None:
            message = f"Cannot change {self.name} from {current.value} to {target.value}"
        raise InvalidTransitionError(message)

    def is_terminal(self, state: S) -> bool:
        return not self.transitions.get(state)


# ==================== Membership ===================== #
# Role changes are not transitions; they are allowed on any non-REVOKED row.
MEMBERSHIP = StateMachine[MemberStatus](
    name="membership status",
    transitions={
        MemberStatus.INVITED: frozenset({MemberStatus.ACTIVE, MemberStatus.REVOKED}),
        MemberStatus.ACTIVE: frozenset({MemberStatus.REVOKED}),
        MemberStatus.REVOKED: frozenset(),
    },
    blocked_messages={
        MemberStatus.REVOKED: "Membership has been revoked",
    },
)


def ensure_membership_mutable(status: MemberStatus) -> None:
    """Reject role changes on a revoked membership."""
    if MEMBERSHIP.is_terminal(status):
        raise InvalidTransitionError("Cannot change the role of a revoked membership")


# ==================== Job Posting ===================== #
_ALL_JOB_STATUSES = frozenset(JobStatus)

JOB = StateMachine[JobStatus](
    name="job status",
    transitions={state: _ALL_JOB_STATUSES for state in JobStatus},
)


# ==================== Application ===================== #
# Company-side review: anything but WITHDRAWN may be moved between decisions.
APPLICATION_REVIEW = StateMachine[ApplicationStatus](
    name="application status",
    transitions={
        ApplicationStatus.APPLIED: frozenset(
            {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED}
        ),
        ApplicationStatus.ACCEPTED: frozenset(
            {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED}
        ),
        ApplicationStatus.REJECTED: frozenset(
            {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED}
        ),
        ApplicationStatus.WITHDRAWN: frozenset(),
    },
    blocked_messages={
        ApplicationStatus.WITHDRAWN: "Cannot update a withdrawn application",
    },
)

# Candidate-side withdrawal: an accepted offer cannot be walked back here.
APPLICATION_WITHDRAWAL = StateMachine[ApplicationStatus](
    name="application status",
    transitions={
        ApplicationStatus.APPLIED: frozenset({ApplicationStatus.WITHDRAWN}),
        ApplicationStatus.REJECTED: frozenset({ApplicationStatus.WITHDRAWN}),
        ApplicationStatus.ACCEPTED: frozenset(),
        ApplicationStatus.WITHDRAWN: frozenset(),
    },
    blocked_messages={
        ApplicationStatus.ACCEPTED: "Cannot withdraw an already accepted application",
        ApplicationStatus.WITHDRAWN: "Application is already withdrawn",
    },
)
