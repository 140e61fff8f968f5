"""Source-fact extractors for JavaScript/TypeScript files.

An extractor turns the text of one source file into a :class:`SourceFacts`
record (imports, exports, hook usage, prop types, route definitions and API
calls). Downstream code only sees ``SourceFacts``, so strategies can be
swapped without touching the analyzer:

- :class:`PatternExtractor` uses regular expressions and a small JSX tag
  scanner. It is the default.
- ``TreeSitterExtractor`` (see ``tree_sitter_extractor``) parses the file and
  reuses the textual route and endpoint helpers from this module.

Both are heuristics. Hook detection in particular only looks for call
patterns such as ``useState(`` and may report false positives.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from graft.errors import ExtractionError

from .models import ImportInfo, PropInfo

logger = logging.getLogger(__name__)

# Elements that guard nested routes behind authentication
AUTH_WRAPPERS: frozenset[str] = frozenset({
    "ProtectedRoute",
    "PrivateRoute",
    "RequireAuth",
    "AuthGuard",
    "AuthRoute",
})

# Elements that wrap a route's element without being the page itself
TRANSPARENT_WRAPPERS: frozenset[str] = frozenset({
    "Suspense",
    "React.Suspense",
    "Fragment",
    "React.Fragment",
    "ErrorBoundary",
})

STATE_LIBRARIES: dict[str, tuple[str, ...]] = {
    "redux": ("redux", "@reduxjs/toolkit", "react-redux"),
    "zustand": ("zustand",),
}

HTTP_VERBS = ("get", "post", "put", "patch", "delete", "head", "options", "request")


@dataclass
class RouteDefinition:
    """A route as written in one file, before component resolution."""
    path: str
    component: str
    protected: bool = False
    layout: str | None = None


@dataclass
class SourceFacts:
    """Everything an extractor recovers from one source file."""
    imports: list[ImportInfo] = field(default_factory=list)
    default_export: str | None = None
    has_default_export: bool = False
    named_exports: list[str] = field(default_factory=list)
    has_state: bool = False
    has_effects: bool = False
    defines_context: bool = False
    prop_types: dict[str, list[PropInfo]] = field(default_factory=dict)
    routes: list[RouteDefinition] = field(default_factory=list)
    api_endpoints: list[str] = field(default_factory=list)

    @property
    def has_exports(self) -> bool:
        return self.has_default_export or bool(self.named_exports)


class SourceFactExtractor(ABC):
    """Strategy interface for per-file fact extraction."""

    name: str = "base"

    @abstractmethod
    def extract(self, path: Path, text: str) -> SourceFacts:
        """Extract facts from ``text``, the contents of ``path``.

        Raises:
            ExtractionError: If the file cannot be understood at all.
        """


# ── Comment handling ──────────────────────────────────────────────

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"^[ \t]*//.*$", re.MULTILINE)


def strip_comments(text: str) -> str:
    """Remove block comments and whole-line ``//`` comments."""
    text = _BLOCK_COMMENT_RE.sub(lambda m: "\n" * m.group(0).count("\n"), text)
    return _LINE_COMMENT_RE.sub("", text)


# ── Imports ───────────────────────────────────────────────────────

_IMPORT_RE = re.compile(
    r"""^[ \t]*import\s+(?:type\s+)?(?P<clause>[\w$*{}\s,]+?)\s+from\s+['"](?P<source>[^'"]+)['"]""",
    re.MULTILINE,
)
_BARE_IMPORT_RE = re.compile(r"""^[ \t]*import\s+['"](?P<source>[^'"]+)['"]""", re.MULTILINE)
_REQUIRE_RE = re.compile(
    r"""\b(?:const|let|var)\s+(?P<target>[\w$]+|\{[^}]*\})\s*=\s*require\(\s*['"](?P<source>[^'"]+)['"]\s*\)"""
)


def _parse_named(inner: str) -> list[str]:
    names = []
    for part in inner.split(","):
        part = part.strip()
        if part.startswith("type "):
            part = part[5:].strip()
        if not part:
            continue
        names.append(part.split(" as ")[0].strip())
    return names


def _parse_import_clause(clause: str) -> tuple[list[str], bool]:
    """Return (specifiers, is_default) for an import clause."""
    specifiers: list[str] = []
    is_default = False
    clause = " ".join(clause.split())

    brace = clause.find("{")
    head = clause[:brace] if brace >= 0 else clause
    if brace >= 0:
        end = clause.find("}", brace)
        specifiers.extend(_parse_named(clause[brace + 1:end if end >= 0 else None]))

    for part in head.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("*"):
            alias = part.split(" as ")[-1].strip()
            if alias and alias != "*":
                specifiers.insert(0, alias)
        else:
            is_default = True
            specifiers.insert(0, part)
    return specifiers, is_default


def extract_imports(text: str) -> list[ImportInfo]:
    """Find ES module imports and CommonJS requires, in source order."""
    found: list[tuple[int, ImportInfo]] = []
    for m in _IMPORT_RE.finditer(text):
        specifiers, is_default = _parse_import_clause(m.group("clause"))
        found.append((m.start(), ImportInfo(m.group("source"), specifiers, is_default)))
    for m in _BARE_IMPORT_RE.finditer(text):
        found.append((m.start(), ImportInfo(m.group("source"), [], False)))
    for m in _REQUIRE_RE.finditer(text):
        target = m.group("target")
        if target.startswith("{"):
            found.append((m.start(), ImportInfo(m.group("source"), _parse_named(target[1:-1]), False)))
        else:
            found.append((m.start(), ImportInfo(m.group("source"), [target], True)))
    found.sort(key=lambda item: item[0])
    return [info for _, info in found]


# ── Exports ───────────────────────────────────────────────────────

_EXPORT_DECL_RE = re.compile(
    r"^[ \t]*export\s+(?:declare\s+)?(?:async\s+)?"
    r"(?:function\s*\*?\s*|class\s+|(?:const|let|var)\s+|(?:const\s+)?enum\s+|abstract\s+class\s+)"
    r"(?P<name>[A-Za-z_$][\w$]*)",
    re.MULTILINE,
)
_EXPORT_LIST_RE = re.compile(r"^[ \t]*export\s+(?!type\b)\{(?P<names>[^}]*)\}", re.MULTILINE)
_EXPORT_DEFAULT_RE = re.compile(r"^[ \t]*export\s+default\s+(?P<rest>[^\n]*)", re.MULTILINE)
_DEFAULT_DECL_RE = re.compile(
    r"^(?:async\s+)?(?:function\b\s*\*?|(?:abstract\s+)?class\b)\s*(?P<name>(?!extends\b)[A-Za-z_$][\w$]*)?"
)
_IDENTIFIER_RE = re.compile(r"^(?P<name>[A-Za-z_$][\w$]*)\s*;?\s*$")
_WRAPPED_ARG_RE = re.compile(r"\(\s*(?P<name>[A-Z][\w$]*)\s*\)")


def _default_export_name(rest: str) -> str | None:
    rest = rest.strip()
    decl = _DEFAULT_DECL_RE.match(rest)
    if decl:
        return decl.group("name")
    ident = _IDENTIFIER_RE.match(rest)
    if ident:
        return ident.group("name")
    # memo(Page), connect(mapState)(Page), withRouter(Page)
    wrapped = _WRAPPED_ARG_RE.findall(rest)
    if wrapped:
        return wrapped[-1]
    return None


def extract_exports(text: str) -> tuple[str | None, bool, list[str]]:
    """Return (default export name, has default export, named exports)."""
    named: list[str] = []
    for m in _EXPORT_DECL_RE.finditer(text):
        named.append(m.group("name"))
    for m in _EXPORT_LIST_RE.finditer(text):
        for part in m.group("names").split(","):
            part = part.strip()
            if not part or part.startswith("type "):
                continue
            exported = part.split(" as ")[-1].strip()
            if exported == "default":
                continue
            named.append(exported)

    default_name: str | None = None
    has_default = False
    for m in _EXPORT_DEFAULT_RE.finditer(text):
        has_default = True
        default_name = _default_export_name(m.group("rest"))
        break
    if not has_default and re.search(r"\bas\s+default\b", text):
        has_default = True

    return default_name, has_default, list(dict.fromkeys(named))


# ── Hooks & context ───────────────────────────────────────────────

_GENERIC = r"(?:<[^()\n]*?>)?"
_STATE_HOOK_RE = re.compile(r"\buse(?:State|Reducer)\s*" + _GENERIC + r"\s*\(")
_EFFECT_HOOK_RE = re.compile(r"\buse(?:Layout)?Effect\s*\(")
_CONTEXT_DEF_RE = re.compile(r"\bcreateContext\s*" + _GENERIC + r"\s*\(")


# ── Props ─────────────────────────────────────────────────────────

_PROPS_DECL_RE = re.compile(
    r"\b(?:interface\s+(?P<iname>\w*Props)\b[^{]*|type\s+(?P<tname>\w*Props)\s*=\s*)"
    r"\{(?P<body>[^{}]*(?:\{[^{}]*\}[^{}]*)*)\}"
)
_PROP_MEMBER_RE = re.compile(
    r"^\s*(?:readonly\s+)?['\"]?(?P<name>[A-Za-z_$][\w$]*)['\"]?\s*(?P<optional>\?)?\s*:\s*(?P<type>.+?)\s*,?\s*$"
)


def extract_prop_types(text: str) -> dict[str, list[PropInfo]]:
    """Parse ``interface XProps {...}`` and ``type XProps = {...}`` members."""
    result: dict[str, list[PropInfo]] = {}
    for m in _PROPS_DECL_RE.finditer(text):
        type_name = m.group("iname") or m.group("tname")
        body = re.sub(r"\{[^{}]*\}", "{}", m.group("body"))
        props: list[PropInfo] = []
        for piece in re.split(r"[;\n]", body):
            member = _PROP_MEMBER_RE.match(piece)
            if member:
                props.append(PropInfo(
                    name=member.group("name"),
                    type=member.group("type").strip() or None,
                    required=member.group("optional") is None,
                ))
        result[type_name] = props
    return result


# ── Routes: declarative JSX ───────────────────────────────────────

_BRACED = r"\{(?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*\}"
_JSX_TAG_RE = re.compile(
    r"<(?P<closing>/)?(?P<name>[A-Z][\w$]*(?:\.[A-Z][\w$]*)?)"
    r"(?P<attrs>(?:[^<>{}\"']|\"[^\"]*\"|'[^']*'|" + _BRACED + r")*?)"
    r"(?P<selfclose>/)?>"
)
_JSX_NAME_RE = re.compile(r"<(?P<name>[A-Z][\w$]*(?:\.[A-Z][\w$]*)?)")
_PATH_ATTR_RE = re.compile(
    r"""(?:^|\s)path\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|\{\s*[`'"](?P<expr>[^`'"]*)[`'"]\s*\})"""
)
_INDEX_ATTR_RE = re.compile(r"(?:^|\s)index(?:\s*=\s*\{\s*true\s*\})?(?=\s|/|$)")
# Attribute values such as fallback={<Spinner />} are not the routed page
_JSX_ATTR_EXPR_RE = re.compile(r"\s[\w$-]+\s*=\s*" + _BRACED)


def _braced_value(text: str, start: int) -> str | None:
    """Return the content of the balanced ``{...}`` block opening at ``start``."""
    if start >= len(text) or text[start] != "{":
        return None
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start + 1:i]
    return None


def _attr_expression(attrs: str, names: tuple[str, ...]) -> str | None:
    for name in names:
        m = re.search(r"(?:^|\s)" + name + r"\s*=\s*(?=\{)", attrs)
        if m:
            return _braced_value(attrs, m.end())
    return None


def element_component(expression: str) -> tuple[str | None, bool]:
    """Resolve the page component inside a route element expression.

    Returns (component name, wrapped in an auth guard).
    """
    expression = _JSX_ATTR_EXPR_RE.sub("", expression.strip())
    names = [m.group("name") for m in _JSX_NAME_RE.finditer(expression)]
    if not names:
        ident = re.match(r"^([A-Z][\w$]*)$", expression)
        return (ident.group(1) if ident else None), False

    protected = any(n in AUTH_WRAPPERS for n in names)
    for n in names:
        if n in AUTH_WRAPPERS or n in TRANSPARENT_WRAPPERS:
            continue
        return n, protected
    return None, protected


def join_route_path(parent: str | None, child: str) -> str:
    """Join a nested route path onto its parent and normalize to a leading '/'."""
    if child.startswith("/") or not parent:
        joined = child
    else:
        joined = parent.rstrip("/") + "/" + child
    if not joined.startswith("/"):
        joined = "/" + joined
    if len(joined) > 1:
        joined = joined.rstrip("/") or "/"
    return joined


@dataclass
class _OpenTag:
    name: str
    path: str | None = None
    component: str | None = None
    protected: bool = False
    is_route: bool = False


def _route_context(stack: list[_OpenTag]) -> tuple[str | None, str | None, bool]:
    """Return (parent path, layout component, protected) for the current nesting."""
    parent_path = None
    layout = None
    protected = False
    for tag in reversed(stack):
        if tag.name in AUTH_WRAPPERS or tag.protected:
            protected = True
        if tag.is_route:
            if parent_path is None and tag.path is not None:
                parent_path = tag.path
            if layout is None and tag.component is not None:
                layout = tag.component
    return parent_path, layout, protected


def extract_jsx_routes(text: str) -> list[RouteDefinition]:
    """Find ``<Route>`` elements, following nesting, layouts and auth guards."""
    routes: list[RouteDefinition] = []
    stack: list[_OpenTag] = []

    for m in _JSX_TAG_RE.finditer(text):
        name = m.group("name")
        if m.group("closing"):
            for i in range(len(stack) - 1, -1, -1):
                if stack[i].name == name:
                    del stack[i:]
                    break
            continue

        self_closing = bool(m.group("selfclose"))
        if name != "Route":
            if not self_closing:
                stack.append(_OpenTag(name=name))
            continue

        attrs = m.group("attrs")
        parent_path, layout, inherited_protected = _route_context(stack)

        path_match = _PATH_ATTR_RE.search(attrs)
        raw_path = None
        if path_match:
            raw_path = next(
                g for g in (path_match.group("dq"), path_match.group("sq"), path_match.group("expr"))
                if g is not None
            )
        is_index = raw_path is None and bool(_INDEX_ATTR_RE.search(attrs))

        expression = _attr_expression(attrs, ("element", "component", "Component"))
        component, guarded = element_component(expression) if expression else (None, False)
        protected = inherited_protected or guarded

        full_path = None
        if raw_path is not None:
            full_path = join_route_path(parent_path, raw_path)
        elif is_index:
            full_path = parent_path or "/"

        if full_path is not None and component:
            routes.append(RouteDefinition(
                path=full_path,
                component=component,
                protected=protected,
                layout=layout,
            ))

        if not self_closing:
            stack.append(_OpenTag(
                name="Route",
                path=full_path if raw_path is not None else None,
                component=component,
                protected=guarded,
                is_route=True,
            ))

    return routes


# ── Routes: definition tables ─────────────────────────────────────

_TABLE_ENTRY_RE = re.compile(
    r"""\b(?:path\s*:\s*(?P<q>['"`])(?P<path>.*?)(?P=q)|index\s*:\s*true)"""
)
_TABLE_ELEMENT_RE = re.compile(r"\belement\s*:\s*(?P<expr><.*?/>|<.*?>)", re.DOTALL)
_TABLE_COMPONENT_RE = re.compile(r"\b(?:component|Component)\s*:\s*(?P<name>[A-Z][\w$]*)")
_CHILDREN_ARRAY_RE = re.compile(r"\bchildren\s*:\s*\[")


def _depth_map(text: str) -> list[int]:
    depths = []
    depth = 0
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        depths.append(depth)
    return depths


def _enclosing_object(text: str, pos: int) -> tuple[int, int] | None:
    depth = 0
    for i in range(pos - 1, -1, -1):
        ch = text[i]
        if ch == "}":
            depth += 1
        elif ch == "{":
            if depth == 0:
                body = _braced_value(text, i)
                if body is None:
                    return None
                return i + 1, i + 1 + len(body)
            depth -= 1
    return None


def _without_children(body: str) -> str:
    m = _CHILDREN_ARRAY_RE.search(body)
    if not m:
        return body
    depth = 0
    for i in range(m.end() - 1, len(body)):
        if body[i] == "[":
            depth += 1
        elif body[i] == "]":
            depth -= 1
            if depth == 0:
                return body[:m.start()] + body[i + 1:]
    return body[:m.start()]


def extract_table_routes(text: str) -> list[RouteDefinition]:
    """Find route objects such as ``{ path: '/x', element: <X /> }``."""
    routes: list[RouteDefinition] = []
    depths = _depth_map(text)
    # (depth, full path, component, protected)
    parents: list[tuple[int, str | None, str | None, bool]] = []

    for m in _TABLE_ENTRY_RE.finditer(text):
        region = _enclosing_object(text, m.start())
        if region is None:
            continue
        body = _without_children(text[region[0]:region[1]])
        depth = depths[m.start()]

        while parents and parents[-1][0] >= depth:
            parents.pop()
        parent_path = next((p[1] for p in reversed(parents) if p[1] is not None), None)
        layout = next((p[2] for p in reversed(parents) if p[2] is not None), None)
        inherited_protected = any(p[3] for p in parents)

        component = None
        guarded = False
        element = _TABLE_ELEMENT_RE.search(body)
        if element:
            component, guarded = element_component(element.group("expr"))
        if component is None:
            named = _TABLE_COMPONENT_RE.search(body)
            if named:
                component = named.group("name")

        raw_path = m.group("path")
        if raw_path is not None:
            full_path = join_route_path(parent_path, raw_path)
        else:
            full_path = parent_path or "/"

        if component or guarded:
            parents.append((depth, full_path if raw_path is not None else None, component, guarded))
        if component:
            routes.append(RouteDefinition(
                path=full_path,
                component=component,
                protected=inherited_protected or guarded,
                layout=layout,
            ))

    return routes


def extract_routes(text: str) -> list[RouteDefinition]:
    """Collect declarative and table-style route definitions from a file."""
    routes = extract_jsx_routes(text)
    if "path" in text and ("element:" in text or "omponent:" in text):
        routes.extend(extract_table_routes(text))
    return routes


# ── API endpoints ─────────────────────────────────────────────────

_STRING_ARG = r"""\s*(?P<q>['"`])(?P<url>(?:\\.|(?!(?P=q)).)*?)(?P=q)"""
_FETCH_RE = re.compile(r"\bfetch\s*\(" + _STRING_ARG)
_AXIOS_RE = re.compile(
    r"\baxios(?:\.(?:" + "|".join(HTTP_VERBS) + r"))?\s*" + _GENERIC + r"\s*\(" + _STRING_ARG
)
_CLIENT_RE = re.compile(
    r"\b[\w$]*(?:[Aa]pi|API|[Hh]ttp|[Cc]lient|[Rr]equest|[Ii]nstance)[\w$]*"
    r"\.(?:" + "|".join(HTTP_VERBS) + r")\s*" + _GENERIC + r"\s*\(" + _STRING_ARG
)


def extract_api_endpoints(text: str) -> list[str]:
    """Collect literal URL arguments of fetch/axios/API-client calls.

    Template literals are kept as written, e.g. ``/users/${id}``.
    """
    endpoints: list[str] = []
    for pattern in (_FETCH_RE, _AXIOS_RE, _CLIENT_RE):
        for m in pattern.finditer(text):
            url = m.group("url").strip()
            if url:
                endpoints.append(url)
    return list(dict.fromkeys(endpoints))


# ── Pattern strategy ──────────────────────────────────────────────

class PatternExtractor(SourceFactExtractor):
    """Regex-based extractor; fast, dependency-free and approximate."""

    name = "pattern"

    def extract(self, path: Path, text: str) -> SourceFacts:
        if "\x00" in text:
            raise ExtractionError(f"{path} looks like a binary file", file_path=str(path))

        code = strip_comments(text)
        default_name, has_default, named = extract_exports(code)

        return SourceFacts(
            imports=extract_imports(code),
            default_export=default_name,
            has_default_export=has_default,
            named_exports=named,
            has_state=bool(_STATE_HOOK_RE.search(code)),
            has_effects=bool(_EFFECT_HOOK_RE.search(code)),
            defines_context=bool(_CONTEXT_DEF_RE.search(code)),
            prop_types=extract_prop_types(code),
            routes=extract_routes(code),
            api_endpoints=extract_api_endpoints(code),
        )


def detect_state_library(source: str) -> str | None:
    """Map an import specifier to a state-management library name."""
    for library, packages in STATE_LIBRARIES.items():
        for package in packages:
            if source == package or source.startswith(package + "/"):
                return library
    return None
