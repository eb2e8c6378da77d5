import glob
import logging
import os
from typing import Iterable, List, Optional

from ensure_ui.data import DiscoveredFlow, DiscoveredPage

PAGE_DIRECTORIES = ("pages", "app", "src/pages", "src/app")
SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")
DEFAULT_FLOW_PATTERNS = ("**/*.flow.md",)
MARKER = "ensureUI"


def _skip_dir(name: str) -> bool:
    return name == "node_modules" or name.startswith(".")


def discover_pages(project_root: str) -> List[DiscoveredPage]:
    """Find page source files that carry at least one ensureUI comment.

    Paths are joined to the absolute ``project_root`` and sorted, so the run
    order is stable between invocations.
    """
    project_root = os.path.abspath(project_root)
    found = set()
    for directory in PAGE_DIRECTORIES:
        base = os.path.join(project_root, directory)
        if not os.path.isdir(base):
            continue
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = [d for d in dirnames if not _skip_dir(d)]
            for filename in filenames:
                if not filename.endswith(SOURCE_EXTENSIONS):
                    continue
                full_path = os.path.join(dirpath, filename)
                try:
                    with open(full_path, "r", encoding="utf-8") as f:
                        if MARKER not in f.read():
                            continue
                except (OSError, UnicodeDecodeError) as e:
                    logging.warning(f"Skipping unreadable file {full_path}: {e}")
                    continue
                found.add(full_path)

    pages = [DiscoveredPage(file_path=path.replace(os.sep, "/")) for path in sorted(found)]
    logging.debug(f"Discovered {len(pages)} pages under {project_root}")
    return pages


def discover_flows(project_root: str, patterns: Optional[Iterable[str]] = None) -> List[DiscoveredFlow]:
    project_root = os.path.abspath(project_root)
    found = set()
    for pattern in patterns or DEFAULT_FLOW_PATTERNS:
        for path in glob.glob(os.path.join(project_root, pattern), recursive=True):
            rel = os.path.relpath(path, project_root)
            parts = rel.split(os.sep)
            if any(_skip_dir(p) for p in parts[:-1]) or not os.path.isfile(path):
                continue
            found.add(path)

    flows = [DiscoveredFlow(file_path=path.replace(os.sep, "/")) for path in sorted(found)]
    logging.debug(f"Discovered {len(flows)} flow documents under {project_root}")
    return flows
