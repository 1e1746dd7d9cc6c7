"""Collaborator role -> capability table.

This is the only place capabilities are derived from a role.  Services,
routers and response payloads all import from here so the rules a client
sees and the rules the server enforces cannot drift apart.
"""

from dataclasses import dataclass

ROLE_VIEWER = "viewer"
ROLE_COMMENTER = "commenter"
ROLE_EDITOR = "editor"
ROLE_REVIEWER = "reviewer"
ROLE_CONTRIBUTOR = "contributor"

# Most restrictive first
COLLABORATOR_ROLES: tuple[str, ...] = (
    ROLE_VIEWER,
    ROLE_COMMENTER,
    ROLE_EDITOR,
    ROLE_REVIEWER,
    ROLE_CONTRIBUTOR,
)

ROLE_DESCRIPTIONS: dict[str, str] = {
    ROLE_VIEWER: "Can view the proposal only",
    ROLE_COMMENTER: "Can view and comment",
    ROLE_EDITOR: "Can view, comment and edit answers",
    ROLE_REVIEWER: "Can edit and approve, reject or lock answers",
    ROLE_CONTRIBUTOR: "Full collaborator access including AI generation",
}

CAPABILITY_NAMES: tuple[str, ...] = (
    "can_view",
    "can_edit",
    "can_comment",
    "can_review",
    "can_generate_ai",
)


@dataclass(frozen=True)
class Capabilities:
    """What a caller may do on one proposal.  Derived, never stored."""

    can_view: bool = False
    can_edit: bool = False
    can_comment: bool = False
    can_review: bool = False
    can_generate_ai: bool = False

    def allows(self, capability: str) -> bool:
        if capability not in CAPABILITY_NAMES:
            raise ValueError(f"Unknown capability: {capability}")
        return getattr(self, capability)

    def to_dict(self) -> dict[str, bool]:
        """Return the camelCase flags used in API payloads."""
        return {
            "canView": self.can_view,
            "canEdit": self.can_edit,
            "canComment": self.can_comment,
            "canReview": self.can_review,
            "canGenerateAi": self.can_generate_ai,
        }


ROLE_TO_CAPABILITIES: dict[str, Capabilities] = {
    ROLE_VIEWER: Capabilities(can_view=True),
    ROLE_COMMENTER: Capabilities(can_view=True, can_comment=True),
    ROLE_EDITOR: Capabilities(can_view=True, can_edit=True, can_comment=True),
    ROLE_REVIEWER: Capabilities(
        can_view=True, can_edit=True, can_comment=True, can_review=True
    ),
    ROLE_CONTRIBUTOR: Capabilities(
        can_view=True,
        can_edit=True,
        can_comment=True,
        can_review=True,
        can_generate_ai=True,
    ),
}

FULL_ACCESS = ROLE_TO_CAPABILITIES[ROLE_CONTRIBUTOR]
NO_ACCESS = Capabilities()


def normalize_role(role: str | None) -> str:
    """Lower-case *role*, mapping unknown or missing values to ``viewer``."""
    key = (role or ROLE_VIEWER).strip().lower()
    return key if key in ROLE_TO_CAPABILITIES else ROLE_VIEWER


def permissions_for(role: str | None) -> Capabilities:
    """Return the capability set for a collaborator role.

    Total over all strings: anything that is not a known role behaves
    exactly like ``viewer``.
    """
    return ROLE_TO_CAPABILITIES[normalize_role(role)]


def is_valid_role(role: str | None) -> bool:
    return (role or "").strip().lower() in ROLE_TO_CAPABILITIES
