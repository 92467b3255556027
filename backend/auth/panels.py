"""Panel authorization: every role but master is confined to its own panel."""

from core.errors import PanelAccessDenied
from core.logger import logger

PANELS = ("client", "instructor", "admin")


class PanelAuthorizer:
    def authorize(self, role: str, requested_panel: str, username: str = "") -> None:
        if role == "master":
            return
        if requested_panel != role:
            logger.info(
                "Panel access denied for %s: has %s, tried %s",
                username,
                role,
                requested_panel,
            )
            raise PanelAccessDenied(allowed_panel=role)
