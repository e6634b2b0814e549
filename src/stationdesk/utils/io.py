"""Atomic file writes and the YAML/JSON documents of the store and job folders.

Nothing here leaves a half-written file at its destination: data goes to a
temporary sibling first and is moved into place with ``os.replace``.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

_yaml = YAML()
_yaml.preserve_quotes = True
_yaml.default_flow_style = False


def write_atomic(path: Path | str, data: Any, *, as_yaml: bool = False) -> None:
    """Write text, bytes, YAML or JSON to ``path`` via a temp file in the same folder."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="wb" if isinstance(data, bytes) else "w",
        dir=path.parent,
        prefix=f".{path.stem}-",
        suffix=path.suffix,
        delete=False,
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            if as_yaml:
                _yaml.dump(data, tmp)
            elif isinstance(data, (str, bytes)):
                tmp.write(data)
            else:
                json.dump(data, tmp, indent=2, default=str)
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise

    os.replace(tmp_path, path)


def read_yaml(path: Path | str) -> dict:
    """Read a YAML document (project, config) as a dict; empty files give ``{}``."""
    with open(path) as f:
        return dict(_yaml.load(f) or {})


def write_yaml(path: Path | str, data: dict) -> None:
    write_atomic(path, data, as_yaml=True)


def read_json(path: Path | str) -> Any:
    with open(path) as f:
        return json.load(f)


def write_json(path: Path | str, data: Any) -> None:
    """Write a plan, summary or queue state as indented JSON."""
    write_atomic(path, data)


def copy_via_tmp(src: Path | str, dst: Path | str) -> Path:
    """Copy ``src`` next to ``dst`` as ``<dst>.tmp``, then move it into place."""
    src, dst = Path(src), Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    tmp = dst.with_name(dst.name + ".tmp")
    try:
        shutil.copy2(src, tmp)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    os.replace(tmp, dst)
    return dst
