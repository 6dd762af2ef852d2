"""Pure queue operations.

The install queue is an ordered tuple of QueueItem keyed by ``id``.
Every function here returns a new tuple and never mutates its input,
so callers can share snapshots freely.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace

from pakky.models.package import (
    PackageAction,
    PackageStatus,
    PackageType,
    QueueItem,
    make_item_id,
)

Queue = tuple[QueueItem, ...]

# Description used when no better one is known
DEFAULT_DESCRIPTIONS: dict[PackageType, str] = {
    PackageType.FORMULA: "CLI tool",
    PackageType.CASK: "Application",
}


@dataclass(frozen=True, slots=True)
class PackageCandidate:
    """Package the user wants to queue.

    Attributes:
        name: Package name.
        type: Formula or cask.
        description: Known description, if any.
        installed: The package is already known to be installed.
    """

    name: str
    type: PackageType
    description: str | None = None
    installed: bool = False

    @property
    def id(self) -> str:
        """Queue identity the candidate would receive."""
        return make_item_id(self.type, self.name)


@dataclass(frozen=True, slots=True)
class AddResult:
    """Result of adding a candidate to the queue.

    Attributes:
        queue: The resulting queue.
        added: Items that were newly appended.
        duplicates: Ids that were already queued (no-op).
    """

    queue: Queue
    added: tuple[QueueItem, ...] = ()
    duplicates: tuple[str, ...] = ()


def default_description(package_type: PackageType) -> str:
    """Return the fallback description for a package type."""
    return DEFAULT_DESCRIPTIONS[package_type]


def find(queue: Queue, item_id: str) -> QueueItem | None:
    """Find an item by id.

    Args:
        queue: Queue to search.
        item_id: Identity in ``type:name`` form.

    Returns:
        The matching item, or None.
    """
    for item in queue:
        if item.id == item_id:
            return item
    return None


def add(queue: Queue, candidate: PackageCandidate) -> AddResult:
    """Append a candidate unless its id is already queued.

    Adding is idempotent: a duplicate returns the queue unchanged and
    reports the id in ``duplicates``.

    Args:
        queue: Current queue.
        candidate: Package to add.

    Returns:
        AddResult with the resulting queue and the newly added items.
    """
    item_id = candidate.id
    if find(queue, item_id) is not None:
        return AddResult(queue=queue, duplicates=(item_id,))

    status = PackageStatus.ALREADY_INSTALLED if candidate.installed else PackageStatus.PENDING
    item = QueueItem(
        name=candidate.name,
        type=candidate.type,
        status=status,
        description=candidate.description,
    )
    return AddResult(queue=(*queue, item), added=(item,))


def remove(queue: Queue, item_id: str) -> Queue:
    """Remove an item by id; no-op if absent.

    Callers must not remove an item that is installing; the queue store
    enforces that rule.
    """
    if find(queue, item_id) is None:
        return queue
    return tuple(item for item in queue if item.id != item_id)


def merge(queue: Queue, incoming: Iterable[QueueItem]) -> Queue:
    """Append incoming items whose id is not already queued.

    Existing items keep their order, followed by new items in input
    order. Duplicates inside ``incoming`` are dropped (first wins).

    Args:
        queue: Current queue.
        incoming: Items from an imported configuration or preset.

    Returns:
        The merged queue (the same object when nothing was added).
    """
    seen = {item.id for item in queue}
    new_items: list[QueueItem] = []
    for item in incoming:
        if item.id in seen:
            continue
        seen.add(item.id)
        new_items.append(item)

    if not new_items:
        return queue
    return (*queue, *new_items)


def move(queue: Queue, item_id: str, new_index: int) -> Queue:
    """Move an item to a new zero-based position.

    The index is clamped to the queue bounds, so a large index moves the
    item to the end.

    Args:
        queue: Current queue.
        item_id: Item to move.
        new_index: Target position.

    Returns:
        The reordered queue; the same object if the id is unknown or the
        item is already at that position.
    """
    item = find(queue, item_id)
    if item is None:
        return queue
    rest = [existing for existing in queue if existing.id != item_id]
    target = max(0, min(new_index, len(rest)))
    if queue.index(item) == target:
        return queue
    rest.insert(target, item)
    return tuple(rest)


def replace_item(queue: Queue, item: QueueItem) -> Queue:
    """Replace the item with the same id (last writer wins).

    Returns the queue unchanged if no item has that id.
    """
    if find(queue, item.id) is None:
        return queue
    return tuple(item if existing.id == item.id else existing for existing in queue)


def reinstall(queue: Queue, item_id: str) -> Queue:
    """Reset a finished item to pending with an explicit reinstall action.

    Args:
        queue: Current queue.
        item_id: Item to reinstall.

    Returns:
        The updated queue; unchanged if the id is unknown.

    Raises:
        ValueError: If the item is currently installing.
    """
    item = find(queue, item_id)
    if item is None:
        return queue
    if item.status == PackageStatus.INSTALLING:
        msg = f"Cannot reinstall {item_id} while it is installing"
        raise ValueError(msg)

    updated = replace(
        item,
        status=PackageStatus.PENDING,
        action=PackageAction.REINSTALL,
        error=None,
    )
    return replace_item(queue, updated)


def package_names(queue: Queue) -> list[str]:
    """Return the package names in queue order."""
    return [item.name for item in queue]
