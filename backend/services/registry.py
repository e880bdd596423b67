from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional

from services.models import COMPLETED, CONTENT_FIELDS, PENDING, Asset, FileHandle


class AssetRegistry:
    """Insertion-ordered, in-memory collection of assets keyed by identity.

    Stored assets are never mutated in place: every update swaps in a copy, so a
    snapshot handed out earlier keeps the values it had.
    """

    def __init__(self) -> None:
        self._assets: Dict[str, Asset] = {}

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self._assets.values()))

    def __contains__(self, identity: object) -> bool:
        return identity in self._assets

    def get(self, identity: str) -> Optional[Asset]:
        return self._assets.get(identity)

    def snapshot(self) -> List[Asset]:
        return list(self._assets.values())

    def add(self, new_assets: Iterable[Asset]) -> List[Asset]:
        for asset in new_assets:
            if asset.id in self._assets:
                continue
            self._assets[asset.id] = asset
        return self.snapshot()

    def add_files(self, handles: Iterable[FileHandle], marketplace: str) -> List[Asset]:
        return self.add(Asset.from_file(handle, marketplace) for handle in handles)

    def update(self, identity: str, **fields: Any) -> Optional[Asset]:
        current = self._assets.get(identity)
        if current is None:
            return None
        updated = current.model_copy(update=fields)
        self._assets[identity] = updated
        return updated

    def edit(self, identity: str, **fields: Optional[str]) -> Optional[Asset]:
        unknown = set(fields) - set(CONTENT_FIELDS)
        if unknown:
            raise ValueError(f"Only {', '.join(CONTENT_FIELDS)} can be edited, got: {', '.join(sorted(unknown))}")
        changes = {key: value for key, value in fields.items() if value is not None}
        return self.update(identity, **changes)

    def pending(self) -> List[Asset]:
        return [asset for asset in self._assets.values() if asset.status == PENDING]

    def completed(self) -> List[Asset]:
        return [asset for asset in self._assets.values() if asset.status == COMPLETED]

    def has_pending(self) -> bool:
        return any(asset.status == PENDING for asset in self._assets.values())

    def has_completed(self) -> bool:
        return any(asset.status == COMPLETED for asset in self._assets.values())

    def clear(self) -> None:
        self._assets = {}
