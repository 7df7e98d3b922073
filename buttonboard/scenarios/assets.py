"""
Scenario asset loading.

Assets live in one folder as ``<key>.json`` or ``<key>.scene`` files and are
re-read on every load, so edits take effect on the next run.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from buttonboard.errors import AssetInvalid, ScenarioNotFound
from buttonboard.model import AssetKind, OnError, ScenarioAsset, ScenarioStep
from buttonboard.scenarios.dsl import parse_scene

logger = logging.getLogger(__name__)

ASSET_SUFFIXES = (".json", ".scene")


def _step_from_json(data: Any, index: int, path: Path) -> Optional[ScenarioStep]:
    if not isinstance(data, dict):
        raise AssetInvalid(str(path), f"step {index} is not an object")
    action = data.get("action")
    if not isinstance(action, str) or not action.strip():
        return None
    args = data.get("args")
    if args is not None and not isinstance(args, dict):
        raise AssetInvalid(str(path), f"step {index}: 'args' must be an object")
    at_ms = data.get("atMs", 0)
    if isinstance(at_ms, bool) or not isinstance(at_ms, int):
        raise AssetInvalid(str(path), f"step {index}: 'atMs' must be an integer")
    return ScenarioStep(
        action=action,
        args=args,
        name=str(data.get("name") or ""),
        at_ms=at_ms,
        on_error=OnError.parse(data.get("onError")),
    )


class ScenarioAssetsLoader:
    """
    Loads setup and scene assets from a folder.

    Attributes:
        folder: Asset directory.
        setup_key: Key of the setup asset.
    """

    def __init__(self, folder: Union[str, Path], setup_key: str = "setup"):
        self.folder = Path(folder).expanduser()
        self.setup_key = setup_key

    def _find(self, key: str) -> Optional[Path]:
        if not key or not key.strip() or not self.folder.is_dir():
            return None
        wanted = key.strip().lower()
        for path in sorted(self.folder.iterdir()):
            if path.suffix.lower() in ASSET_SUFFIXES and path.stem.lower() == wanted:
                return path
        return None

    def keys(self) -> List[str]:
        """
        List asset keys in the folder.

        Returns:
            Sorted file stems of ``*.json`` and ``*.scene`` files.
        """
        if not self.folder.is_dir():
            return []
        return sorted(
            {p.stem for p in self.folder.iterdir() if p.is_file() and p.suffix.lower() in ASSET_SUFFIXES}
        )

    def kind_of(self, key: str) -> AssetKind:
        if key.strip().lower() == self.setup_key.strip().lower():
            return AssetKind.SETUP
        return AssetKind.SCENE

    def load_scenario(self, key: str) -> ScenarioAsset:
        """
        Load an asset by key.

        Args:
            key: File name without extension (case-insensitive).

        Returns:
            Asset with blank-action steps dropped and steps sorted by time.

        Raises:
            ScenarioNotFound: If no file exists or it has no executable step.
            AssetInvalid: If the file cannot be parsed.
        """
        path = self._find(key)
        if path is None:
            raise ScenarioNotFound(key)

        logger.info(f"Loading scenario asset '{path.stem}' from {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise AssetInvalid(str(path), str(e)) from e

        if path.suffix.lower() == ".scene":
            try:
                title, steps = parse_scene(text)
            except ValueError as e:
                raise AssetInvalid(str(path), str(e)) from e
            name, version = title or path.stem, 1
        else:
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise AssetInvalid(str(path), f"JSON parse failed: {e}") from e
            if not isinstance(data, dict):
                raise AssetInvalid(str(path), "top level must be an object")
            raw_steps = data.get("steps") or []
            if not isinstance(raw_steps, list):
                raise AssetInvalid(str(path), "'steps' must be an array")
            parsed = [_step_from_json(s, i, path) for i, s in enumerate(raw_steps)]
            steps = sorted((s for s in parsed if s is not None), key=lambda s: s.at_ms)
            name = str(data.get("name") or path.stem)
            version = data.get("version", 1)
            if isinstance(version, bool) or not isinstance(version, int):
                raise AssetInvalid(str(path), "'version' must be an integer")

        if not steps:
            logger.warning(f"Scenario asset '{path.stem}' has no executable steps")
            raise ScenarioNotFound(key)

        return ScenarioAsset(
            key=path.stem, kind=self.kind_of(path.stem), steps=tuple(steps), name=name, version=version
        )

    def load_setup(self) -> ScenarioAsset:
        """Load the setup asset."""
        return self.load_scenario(self.setup_key)
