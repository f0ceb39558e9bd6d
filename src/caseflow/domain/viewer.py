"""The signed-in user looking at a case."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from caseflow.domain.enums import ViewerRole

if TYPE_CHECKING:
    from caseflow.schemas.case import Case


@dataclass(frozen=True)
class Viewer:
    """Role plus user id.

    Attributes:
        role: attorney, paralegal or admin.
        user_id: The viewer's account id. A viewer without one owns no case.
    """

    role: ViewerRole
    user_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is ViewerRole.ADMIN

    @property
    def is_paralegal(self) -> bool:
        return self.role is ViewerRole.PARALEGAL

    def owns(self, case: Case) -> bool:
        """True if the viewer is the attorney who posted the case.

        Both ids must be known. An unknown owner or viewer id never matches.
        """
        if self.role is not ViewerRole.ATTORNEY:
            return False
        owner = case.owner_id
        if owner is None or self.user_id is None:
            return False
        return owner == str(self.user_id)

    def can_manage(self, case: Case) -> bool:
        return self.is_admin or self.owns(case)
