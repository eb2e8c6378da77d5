import re
from typing import Dict, Optional

from ensure_ui.exceptions import RouteParameterError

PAGE_EXTENSIONS = ("js", "jsx", "ts", "tsx", "mdx", "md")

_EXTENSION_RE = re.compile(r"\.(%s)$" % "|".join(PAGE_EXTENSIONS))
_GROUP_RE = re.compile(r"\([^)/]+\)/")
_DYNAMIC_RE = re.compile(r"\[\[?([^\]]+)\]?\]")


def resolve_route(file_path: str, url_params: Optional[Dict[str, str]] = None, project_root: Optional[str] = None) -> str:
    """Convert a page file path into the request path it is served at.

    Every dynamic segment must have a value in ``url_params``; a missing one
    raises :class:`RouteParameterError` naming the segment.
    """
    url_params = url_params or {}
    route = file_path.replace("\\", "/")

    if project_root:
        root = project_root.replace("\\", "/").rstrip("/")
        if root and route.startswith(root + "/"):
            route = route[len(root):]

    route = route.lstrip("/")
    route = re.sub(r"^src/", "", route)
    route = re.sub(r"^pages/", "", route)
    route = re.sub(r"^app/", "", route)
    route = _GROUP_RE.sub("", route)
    route = _EXTENSION_RE.sub("", route)
    route = re.sub(r"/page$", "", route)
    route = re.sub(r"^page$", "", route)
    route = re.sub(r"/index$", "", route)
    route = re.sub(r"^index$", "", route)

    def substitute(match):
        param = match.group(1)
        clean_param = param[3:] if param.startswith("...") else param
        value = url_params.get(clean_param)
        if value is None or str(value).strip() == "":
            raise RouteParameterError(param, clean_param)
        return str(value).strip("/")

    route = _DYNAMIC_RE.sub(substitute, route)
    route = route.rstrip("/")

    if not route.startswith("/"):
        route = "/" + route
    return route
