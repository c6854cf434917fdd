# /jobclient/ports/client_filter.py
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from jobclient.domain.filters import ClientFilterContext


class ClientFilterPort(Protocol):
    def client_filter(self, context: ClientFilterContext) -> None:
        """
        Wrap one job submission. Call ``context.proceed()`` exactly once
        unless the job is meant to be dropped; a second call raises.
        """
