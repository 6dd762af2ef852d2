"""Service composition for pakky.

PakkyService wires the queue store, install orchestrator,
reconciliation monitor, persistence and script engine together and is
the only object front ends talk to, usually through a Boundary built
with ``build_boundary()``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pakky.core import config as config_io
from pakky.core.boundary import Boundary, Operation
from pakky.core.errors import ExternalFailureError, ValidationError
from pakky.core.events import EventBus
from pakky.core.orchestrator import FinishCallback, InstallOrchestrator
from pakky.core.queue import AddResult, PackageCandidate, Queue, default_description
from pakky.core.reconcile import InstalledSet, ReconciliationMonitor
from pakky.core.settings import PakkySettings, load_settings
from pakky.core.state import StateManager
from pakky.core.store import QueueStore
from pakky.models.config import PakkyConfig, Preset
from pakky.models.package import (
    PackageStatus,
    PackageType,
    QueueItem,
    SearchResult,
    make_item_id,
)
from pakky.models.script import ScriptRunResult, ScriptStep, ScriptTemplate
from pakky.models.session import SessionSnapshot
from pakky.operators.base import Installer
from pakky.operators.homebrew import (
    HomebrewInstaller,
    is_valid_package_name,
    is_valid_search_query,
)
from pakky.scanners.base import InstalledScanner
from pakky.scanners.homebrew import HomebrewScanner
from pakky.scripts.engine import LogCallback, ScriptEngine
from pakky.scripts.executor import CommandExecutor, InputProvider, SubprocessExecutor
from pakky.scripts.security import scan_steps
from pakky.scripts.templates import get_suggested_templates, get_template_by_id
from pakky.utils.platform import Facts

logger = logging.getLogger(__name__)

_INSTALLED_STATUSES = frozenset({PackageStatus.SUCCESS, PackageStatus.ALREADY_INSTALLED})


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """What importing a configuration or preset did.

    Attributes:
        source: Name of the imported configuration or preset.
        added: Items appended to the queue.
        duplicates: Ids that were already queued.
        scripts: Script steps carried by the file (never run on import).
        rejected_commands: ``(command, reason)`` pairs the security level would block.
    """

    source: str
    added: tuple[QueueItem, ...] = ()
    duplicates: tuple[str, ...] = ()
    scripts: tuple[ScriptStep, ...] = ()
    rejected_commands: tuple[tuple[str, str], ...] = field(default_factory=tuple)


class PakkyService:
    """Engine facade used by the presentation layer.

    Queue changes are persisted as they happen and, when
    ``auto_reconcile`` is set, schedule a debounced reconciliation pass.

    Example:
        >>> service = create_service()
        >>> service.add_packages(["git", "jq"])
        >>> snapshot = service.start_install(background=False)
    """

    def __init__(
        self,
        installer: Installer,
        scanner: InstalledScanner,
        *,
        state: StateManager | None = None,
        settings: PakkySettings | None = None,
        bus: EventBus | None = None,
        auto_reconcile: bool = True,
    ) -> None:
        """Initialize the service.

        Args:
            installer: External install capability.
            scanner: Installed-set query and description lookup.
            state: Queue and input persistence. Defaults to the XDG state dir.
            settings: Engine settings. Defaults to built-in defaults.
            bus: Event bus shared with the boundary.
            auto_reconcile: Schedule reconciliation after queue changes.
        """
        self.settings = settings or PakkySettings()
        self.state = state or StateManager()
        self.bus = bus or EventBus()
        self._installer = installer
        self._scanner = scanner
        self._auto_reconcile = auto_reconcile

        self.store = QueueStore(self.state.load_queue())
        self.orchestrator = InstallOrchestrator(
            self.store,
            installer,
            scanner=scanner,
            bus=self.bus,
            max_log_lines=self.settings.max_log_lines,
        )
        self.monitor = ReconciliationMonitor(
            self.store,
            scanner,
            debounce=self.settings.reconcile_debounce_seconds,
            is_session_active=lambda: self.orchestrator.is_active or self.store.session_active,
        )
        self.store.on_change(self._on_queue_change)

    # -- Queue ---------------------------------------------------------------------

    def list_queue(self) -> Queue:
        """Return the current queue."""
        return self.store.snapshot()

    def add_packages(
        self,
        names: Iterable[str],
        package_type: PackageType = PackageType.FORMULA,
        *,
        describe: bool = True,
    ) -> AddResult:
        """Queue packages by name.

        Descriptions are looked up only for packages that are not
        already queued; a failed lookup falls back to a generic one.

        Args:
            names: Package names.
            package_type: Formula or cask.
            describe: Look up descriptions with the scanner.

        Returns:
            AddResult with added items and duplicate ids.

        Raises:
            ValidationError: If a name is not a valid package name.
        """
        clean = [name.strip() for name in names]
        invalid = [name for name in clean if not is_valid_package_name(name)]
        if invalid:
            msg = f"Invalid package name(s): {', '.join(repr(n) for n in invalid)}"
            raise ValidationError(msg)

        candidates: list[PackageCandidate] = []
        for name in clean:
            description: str | None = None
            if self.store.get(make_item_id(package_type, name)) is None:
                description = self._describe(name, package_type) if describe else None
            candidates.append(
                PackageCandidate(
                    name=name,
                    type=package_type,
                    description=description or default_description(package_type),
                )
            )

        result = self.store.add_many(candidates)
        logger.info(
            "Queued %d package(s), %d already queued", len(result.added), len(result.duplicates)
        )
        return result

    def resolve(self, ref: str) -> str:
        """Resolve ``type:name`` or a bare name to a queued item id.

        Raises:
            ValidationError: If nothing or more than one item matches.
        """
        ref = ref.strip()
        if self.store.get(ref.lower()) is not None:
            return ref.lower()
        matches = [
            item.id for item in self.store.snapshot() if item.name.lower() == ref.lower()
        ]
        if not matches:
            msg = f"Not in queue: {ref}"
            raise ValidationError(msg)
        if len(matches) > 1:
            msg = f"Ambiguous package {ref!r}; use one of: {', '.join(matches)}"
            raise ValidationError(msg)
        return matches[0]

    def remove(self, ref: str) -> str:
        """Remove a queued item.

        Returns:
            The removed item's id.

        Raises:
            ValidationError: If the item is not queued.
            ItemBusyError: If the item is installing.
        """
        item_id = self.resolve(ref)
        self.store.remove(item_id)
        return item_id

    def reinstall(self, ref: str) -> QueueItem:
        """Reset a queued item to pending with the reinstall action.

        Raises:
            ValidationError: If the item is not queued.
            SessionActiveError: If an install session is running.
            ItemBusyError: If the item is installing.
        """
        item_id = self.resolve(ref)
        item = self.store.reinstall(item_id)
        if item is None:
            msg = f"Not in queue: {ref}"
            raise ValidationError(msg)
        return item

    def move(self, ref: str, index: int) -> Queue:
        """Move a queued item to a zero-based position.

        Returns:
            The queue after the move.

        Raises:
            ValidationError: If the item is not queued.
        """
        item_id = self.resolve(ref)
        if self.store.move(item_id, index):
            logger.info("Moved %s to position %d", item_id, index + 1)
        return self.store.snapshot()

    def clear(self) -> int:
        """Remove every queued item and return how many were removed."""
        return self.store.clear()

    # -- Import / export -------------------------------------------------------------

    def import_file(self, path: Path) -> ImportSummary:
        """Merge a configuration or preset file into the queue.

        Raises:
            ConfigError: If the file is missing or invalid.
        """
        return self._import(config_io.load_importable(path))

    def apply_preset(self, preset_id: str) -> ImportSummary:
        """Merge a preset from the presets directory into the queue.

        Raises:
            ConfigNotFoundError: If no preset has this id.
        """
        return self._import(config_io.find_preset(preset_id))

    def export(
        self,
        path: Path,
        *,
        name: str,
        description: str | None = None,
        template_ids: Sequence[str] = (),
    ) -> Path:
        """Write the queue (and optional script templates) as a configuration.

        Raises:
            ValidationError: If a template id is unknown.
            ConfigError: If the file cannot be written.
        """
        steps = self._steps_for(template_ids)
        config = config_io.build_config(
            self.store.snapshot(), name=name, description=description, scripts=steps
        )
        return config_io.save_config(config, path)

    def _import(self, source: PakkyConfig | Preset) -> ImportSummary:
        items = config_io.packages_to_items(source.homebrew)
        before = {item.id for item in self.store.snapshot()}
        added = self.store.merge(items)
        duplicates = tuple(dict.fromkeys(item.id for item in items if item.id in before))
        rejected = scan_steps(source.scripts, self.settings.security_level)
        logger.info("Imported %r: %d added, %d duplicate", source.name, len(added), len(duplicates))
        return ImportSummary(
            source=source.name,
            added=added,
            duplicates=duplicates,
            scripts=tuple(source.scripts),
            rejected_commands=tuple(rejected),
        )

    # -- Installed set -------------------------------------------------------------

    def get_installed(self) -> InstalledSet:
        """Query the installed packages.

        Raises:
            ExternalFailureError: If the query fails.
        """
        try:
            return self._scanner.installed()
        except (RuntimeError, OSError) as e:
            raise ExternalFailureError(str(e)) from e

    def search(self, query: str) -> list[SearchResult]:
        """Search Homebrew for formulae and casks.

        Raises:
            ValidationError: If the query cannot be passed to brew safely.
        """
        query = query.strip()
        if not is_valid_search_query(query):
            msg = f"Invalid search query: {query!r}"
            raise ValidationError(msg)
        return self._scanner.search(query)

    def check_installed(self) -> bool:
        """Run one reconciliation pass now; return True if anything changed."""
        return self.monitor.run_once()

    # -- Install -------------------------------------------------------------------

    def start_install(
        self,
        on_finish: FinishCallback | None = None,
        *,
        background: bool = True,
    ) -> threading.Thread | SessionSnapshot:
        """Start an install session.

        Returns:
            The session thread, or the final snapshot when not in background.

        Raises:
            SessionActiveError: If a session is already running.
        """
        self.monitor.cancel()

        def finished(snapshot: SessionSnapshot) -> None:
            if self._auto_reconcile:
                self.monitor.notify()
            if on_finish is not None:
                on_finish(snapshot)

        if background:
            return self.orchestrator.start_in_background(finished)
        return self.orchestrator.start(finished)

    def cancel_install(self) -> bool:
        """Request cooperative cancellation of the running session."""
        return self.orchestrator.cancel()

    def install_status(self) -> SessionSnapshot:
        """Return the current session snapshot."""
        return self.orchestrator.snapshot()

    # -- Scripts -------------------------------------------------------------------

    def suggest_scripts(self, names: Iterable[str] | None = None) -> list[ScriptTemplate]:
        """Suggest templates for the given names (default: queued packages)."""
        if names is None:
            names = [item.name for item in self.store.snapshot()]
        return get_suggested_templates(names)

    def run_scripts(
        self,
        inputs: InputProvider,
        *,
        template_ids: Sequence[str] = (),
        steps: Sequence[ScriptStep] = (),
        on_log: LogCallback | None = None,
        cancel: threading.Event | None = None,
        executor: CommandExecutor | None = None,
    ) -> ScriptRunResult:
        """Run template steps followed by extra steps.

        Values the user enters are saved and offered as defaults next time.

        Raises:
            ValidationError: If a template id is unknown.
        """
        all_steps = [*self._steps_for(template_ids), *steps]
        engine = ScriptEngine(
            executor or SubprocessExecutor(timeout=self.settings.command_timeout_seconds),
            inputs,
            self.facts(),
            security_level=self.settings.security_level,
            saved_values=self.state.load_inputs(),
            on_log=on_log,
        )
        result = engine.run(all_steps, cancel)
        try:
            self.state.save_inputs(engine.values)
        except OSError as e:
            logger.warning("Could not save script inputs: %s", e)
        return result

    def facts(self) -> Facts:
        """Build script facts, falling back to the queue when brew cannot be queried."""
        try:
            names = self._scanner.installed().names
        except (RuntimeError, OSError) as e:
            logger.debug("Using queue for script facts: %s", e)
            names = frozenset(
                item.name for item in self.store.snapshot() if item.status in _INSTALLED_STATUSES
            )
        return Facts.from_installed(names)

    def _steps_for(self, template_ids: Iterable[str]) -> list[ScriptStep]:
        steps: list[ScriptStep] = []
        for template_id in template_ids:
            template = get_template_by_id(template_id)
            if template is None:
                msg = f"Unknown script template: {template_id}"
                raise ValidationError(msg)
            steps.append(template.step)
        return steps

    # -- Wiring --------------------------------------------------------------------

    def build_boundary(self) -> Boundary:
        """Expose the service through the allow-listed boundary."""
        boundary = Boundary(self.bus)
        handlers: dict[Operation, Callable[..., object]] = {
            Operation.QUEUE_LIST: self.list_queue,
            Operation.QUEUE_ADD: self.add_packages,
            Operation.QUEUE_REMOVE: self.remove,
            Operation.QUEUE_REINSTALL: self.reinstall,
            Operation.QUEUE_CLEAR: self.clear,
            Operation.QUEUE_MOVE: self.move,
            Operation.QUEUE_IMPORT: self.import_file,
            Operation.INSTALL_START: self.start_install,
            Operation.INSTALL_CANCEL: self.cancel_install,
            Operation.INSTALL_STATUS: self.install_status,
            Operation.INSTALL_GET_INSTALLED: self.get_installed,
            Operation.SCRIPTS_SUGGEST: self.suggest_scripts,
            Operation.SCRIPTS_RUN: self.run_scripts,
            Operation.SEARCH_BREW: self.search,
        }
        for operation, handler in handlers.items():
            boundary.register(operation, handler)
        return boundary

    def close(self) -> None:
        """Stop background reconciliation."""
        self.monitor.cancel()

    def _describe(self, name: str, package_type: PackageType) -> str | None:
        try:
            return self._scanner.describe(name, package_type)
        except (RuntimeError, OSError) as e:
            logger.debug("Description lookup failed for %s: %s", name, e)
            return None

    def _on_queue_change(self, queue: Queue) -> None:
        try:
            self.state.save_queue(queue)
        except OSError as e:
            logger.warning("Could not save queue: %s", e)
        if self._auto_reconcile:
            self.monitor.notify()


def create_service(*, dry_run: bool = False, auto_reconcile: bool = False) -> PakkyService:
    """Build a service backed by Homebrew and the user's settings.

    Raises:
        SettingsError: If the settings file is invalid.
    """
    return PakkyService(
        HomebrewInstaller(dry_run=dry_run),
        HomebrewScanner(),
        settings=load_settings(),
        auto_reconcile=auto_reconcile,
    )
