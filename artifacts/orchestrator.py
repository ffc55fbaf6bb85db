"""Open every Canvas artifact listed in the side panel and read it.

The side panel and its editor view are one shared surface, so artifacts
are processed strictly one at a time. Elements are never held across a
wait: each step takes a fresh snapshot and re-locates its target by
title.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Callable, List, Optional, Set

from .content import read_open_artifact
from .discovery import find_created_section, list_artifact_titles
from .models import ArtifactTitle, ExtractedArtifact
from .navigation import (
    LIST_ATTEMPT_TIMEOUT,
    PANEL_OPEN_TIMEOUT,
    ensure_file_list,
    ensure_side_panel,
    file_list_visible,
)
from .panel import CODE_TAB, has_tab, side_panel_root
from .polling import ConditionPoller
from .state import UIStateCoordinator

if TYPE_CHECKING:  # pragma: no cover - typing helper only
    from .workbench import Workbench

LOGGER = logging.getLogger(__name__)

DEFAULT_BUDGET_SECONDS = 45.0
DEFAULT_RENDER_TIMEOUT = 8.0


class Phase(Enum):
    """Where the orchestrator is in its run."""

    INIT = "init"
    SNAPSHOT_TAKEN = "snapshot-taken"
    SIDEBAR_ENSURED = "sidebar-ensured"
    LIST_ENUMERATED = "list-enumerated"
    SELECTING = "selecting"
    WAITING_RENDER = "waiting-render"
    RESTORING = "restoring"
    DONE = "done"


class ArtifactExtractionOrchestrator:
    """Collect artifacts within a time budget and leave the UI as found.

    The artifact that is already open when the run starts is emitted
    first; the others follow in list order. A failed read before any
    artifact was opened from the list aborts the run, later failures only
    skip the artifact. The captured UI state is restored exactly once,
    however the run ends.
    """

    def __init__(
        self,
        workbench: "Workbench",
        *,
        poller: Optional[ConditionPoller] = None,
        clock: Callable[[], float] = time.monotonic,
        coordinator: Optional[UIStateCoordinator] = None,
        budget_seconds: float = DEFAULT_BUDGET_SECONDS,
        render_timeout: float = DEFAULT_RENDER_TIMEOUT,
        panel_timeout: float = PANEL_OPEN_TIMEOUT,
        list_timeout: float = LIST_ATTEMPT_TIMEOUT,
    ) -> None:
        self.workbench = workbench
        self.clock = clock
        self.poller = poller or ConditionPoller(
            clock=clock, sleep=workbench.pause
        )
        self.coordinator = coordinator or UIStateCoordinator(
            workbench, self.poller
        )
        self.budget_seconds = budget_seconds
        self.render_timeout = render_timeout
        self.panel_timeout = panel_timeout
        self.list_timeout = list_timeout
        self.phase = Phase.INIT
        self._started = 0.0

    def run(self) -> List[ExtractedArtifact]:
        """Return every artifact that could be read, in emission order."""

        self.phase = Phase.INIT
        self._started = self.clock()
        try:
            snapshot = self.coordinator.capture()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Could not capture UI state; skipping artifacts")
            self.phase = Phase.DONE
            return []
        self.phase = Phase.SNAPSHOT_TAKEN

        artifacts: List[ExtractedArtifact] = []
        processed: Set[ArtifactTitle] = set()
        try:
            self._collect(artifacts, processed)
        except Exception:  # noqa: BLE001
            LOGGER.exception(
                "Artifact extraction failed during %s; keeping %d artifact(s)",
                self.phase.value,
                len(artifacts),
            )
        finally:
            self.phase = Phase.RESTORING
            self.coordinator.restore(snapshot)
            self.phase = Phase.DONE
        return artifacts

    def remaining(self) -> float:
        """Seconds left in the overall budget."""

        return self.budget_seconds - (self.clock() - self._started)

    def _collect(
        self, artifacts: List[ExtractedArtifact], processed: Set[ArtifactTitle]
    ) -> None:
        workbench = self.workbench

        already_open = read_open_artifact(workbench)
        if already_open is not None:
            LOGGER.info("Read already open artifact %r", already_open.title)
            artifacts.append(already_open)
            processed.add(already_open.title)

        if not ensure_side_panel(
            workbench, self.poller, timeout=self.panel_timeout
        ):
            LOGGER.info("Side panel did not open")
        self.phase = Phase.SIDEBAR_ENSURED

        ensure_file_list(workbench, self.poller, timeout=self.list_timeout)
        titles = list_artifact_titles(
            find_created_section(side_panel_root(workbench.snapshot()))
        )
        self.phase = Phase.LIST_ENUMERATED
        LOGGER.info("Found %d artifact title(s)", len(titles))

        if not titles:
            if not artifacts:
                self._open_legacy_canvas(artifacts)
            return

        opened_from_list = False
        for title in titles:
            if title in processed:
                continue
            if self.remaining() <= 0:
                LOGGER.warning(
                    "Time budget exhausted before %r; stopping", title
                )
                return
            if not file_list_visible(workbench):
                LOGGER.warning(
                    "Artifact list not visible during %s; stopping before %r",
                    self.phase.value,
                    title,
                )
                return

            try:
                artifact = self._open_and_read(title)
            except Exception:  # noqa: BLE001
                LOGGER.exception(
                    "Opening artifact %r failed during %s",
                    title,
                    self.phase.value,
                )
                artifact = None
            if artifact is not None:
                opened_from_list = True
                artifacts.append(artifact)
                processed.add(title)
            elif not opened_from_list:
                LOGGER.warning(
                    "First artifact %r could not be read during %s; aborting",
                    title,
                    self.phase.value,
                )
                return
            else:
                LOGGER.warning(
                    "Skipping artifact %r after failure during %s",
                    title,
                    self.phase.value,
                )

            if not ensure_file_list(
                workbench, self.poller, timeout=self.list_timeout
            ):
                LOGGER.warning(
                    "Could not return to the artifact list after %r", title
                )
                return

    def _open_and_read(
        self, title: ArtifactTitle
    ) -> Optional[ExtractedArtifact]:
        workbench = self.workbench
        self.phase = Phase.SELECTING
        if not workbench.click_artifact(title):
            LOGGER.debug("No list entry matched %r", title)
            return None
        if has_tab(workbench.snapshot(), CODE_TAB):
            workbench.select_tab(CODE_TAB)

        self.phase = Phase.WAITING_RENDER
        timeout = min(self.render_timeout, max(0.0, self.remaining()))
        return self.poller.wait_for(
            partial(read_open_artifact, workbench, title), timeout
        )

    def _open_legacy_canvas(self, artifacts: List[ExtractedArtifact]) -> None:
        workbench = self.workbench
        self.phase = Phase.SELECTING
        if not workbench.open_legacy_canvas():
            LOGGER.info("No artifact list or open control found")
            return

        self.phase = Phase.WAITING_RENDER
        timeout = min(self.render_timeout, max(0.0, self.remaining()))
        artifact = self.poller.wait_for(
            partial(read_open_artifact, workbench), timeout
        )
        if artifact is None:
            LOGGER.warning("Legacy canvas opened but no content appeared")
            return
        artifacts.append(artifact)


__all__ = [
    "DEFAULT_BUDGET_SECONDS",
    "DEFAULT_RENDER_TIMEOUT",
    "ArtifactExtractionOrchestrator",
    "Phase",
]
