"""Tree-sitter backed source-fact extractor.

Optional dependency: ``tree_sitter_languages``. Install with the
``tree-sitter`` extra. Imports, exports and hook calls are read from the
syntax tree; props, routes and API endpoints reuse the textual helpers in
:mod:`graft.analyzers.extractors`.
"""
from __future__ import annotations

import logging
from pathlib import Path

from graft.errors import ConfigError, ExtractionError

from .extractors import (
    SourceFactExtractor,
    SourceFacts,
    _WRAPPED_ARG_RE,
    _parse_import_clause,
    extract_api_endpoints,
    extract_prop_types,
    extract_routes,
    strip_comments,
)
from .models import ImportInfo

logger = logging.getLogger(__name__)

GRAMMAR_MAP: dict[str, str] = {
    ".tsx": "tsx",
    ".ts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

STATE_HOOKS = {"useState", "useReducer"}
EFFECT_HOOKS = {"useEffect", "useLayoutEffect"}

NAMED_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "enum_declaration",
}
VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}


def _try_tree_sitter() -> bool:
    """Check if tree-sitter is available."""
    try:
        import tree_sitter_languages  # noqa: F401
        return True
    except ImportError:
        return False


_HAS_TREE_SITTER: bool | None = None


def is_available() -> bool:
    """Return True if tree-sitter is installed."""
    global _HAS_TREE_SITTER
    if _HAS_TREE_SITTER is None:
        _HAS_TREE_SITTER = _try_tree_sitter()
    return _HAS_TREE_SITTER


def _text(node) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _unquote(value: str) -> str:
    return value.strip().strip("'\"`")


def _callee_name(call) -> str:
    func = call.child_by_field_name("function")
    if func is None:
        return ""
    if func.type == "member_expression":
        return _text(func.child_by_field_name("property"))
    return _text(func)


def _default_export_name(node) -> str | None:
    if node is None:
        return None
    if node.type in NAMED_DECLARATIONS or node.type in {"function", "function_expression", "class"}:
        name = node.child_by_field_name("name")
        return _text(name) or None
    if node.type == "identifier":
        return _text(node)
    if node.type == "call_expression":
        wrapped = _WRAPPED_ARG_RE.findall(_text(node))
        return wrapped[-1] if wrapped else None
    return None


def _declared_names(node) -> list[str]:
    if node.type in NAMED_DECLARATIONS:
        name = node.child_by_field_name("name")
        return [_text(name)] if name is not None else []
    if node.type in VARIABLE_DECLARATIONS:
        names = []
        for child in node.children:
            if child.type == "variable_declarator":
                name = child.child_by_field_name("name")
                if name is not None and name.type == "identifier":
                    names.append(_text(name))
        return names
    return []


class TreeSitterExtractor(SourceFactExtractor):
    """Extractor that walks a tree-sitter syntax tree."""

    name = "tree-sitter"

    def __init__(self):
        if not is_available():
            raise ConfigError(
                "The tree-sitter extractor needs tree_sitter_languages. "
                "Install it with: pip install 'graft-templates[tree-sitter]'",
                context={"key": "analysis.extractor"},
            )
        self._parsers: dict[str, object] = {}

    def _parser_for(self, path: Path):
        grammar = GRAMMAR_MAP.get(path.suffix)
        if grammar is None:
            raise ExtractionError(f"No grammar for {path.suffix} files", file_path=str(path))
        if grammar not in self._parsers:
            from tree_sitter_languages import get_parser
            try:
                self._parsers[grammar] = get_parser(grammar)
            except Exception as e:
                # Grammar bundle built against an incompatible tree-sitter
                raise ConfigError(
                    f"tree-sitter grammar '{grammar}' is unavailable: {e}",
                    context={"key": "analysis.extractor"},
                ) from e
        return self._parsers[grammar]

    def extract(self, path: Path, text: str) -> SourceFacts:
        if "\x00" in text:
            raise ExtractionError(f"{path} looks like a binary file", file_path=str(path))

        tree = self._parser_for(path).parse(text.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            raise ExtractionError(f"Syntax error while parsing {path}", file_path=str(path))

        facts = SourceFacts()
        self._walk(root, facts)
        facts.named_exports = list(dict.fromkeys(facts.named_exports))

        code = strip_comments(text)
        facts.prop_types = extract_prop_types(code)
        facts.routes = extract_routes(code)
        facts.api_endpoints = extract_api_endpoints(code)
        return facts

    def _walk(self, node, facts: SourceFacts) -> None:
        if node.type == "import_statement":
            self._import(node, facts)
        elif node.type == "export_statement":
            self._export(node, facts)
        elif node.type == "call_expression":
            self._call(node, facts)

        for child in node.children:
            self._walk(child, facts)

    def _import(self, node, facts: SourceFacts) -> None:
        source = _unquote(_text(node.child_by_field_name("source")))
        specifiers: list[str] = []
        is_default = False
        for child in node.children:
            if child.type == "import_clause":
                specifiers, is_default = _parse_import_clause(_text(child))
        facts.imports.append(ImportInfo(source, specifiers, is_default))

    def _export(self, node, facts: SourceFacts) -> None:
        declaration = node.child_by_field_name("declaration")
        if any(child.type == "default" for child in node.children):
            facts.has_default_export = True
            if facts.default_export is None:
                facts.default_export = _default_export_name(
                    declaration or node.child_by_field_name("value")
                )
            return

        if declaration is not None:
            facts.named_exports.extend(_declared_names(declaration))

        for child in node.children:
            if child.type != "export_clause":
                continue
            for spec in child.children:
                if spec.type != "export_specifier":
                    continue
                exported = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                name = _text(exported)
                if name == "default":
                    facts.has_default_export = True
                elif name:
                    facts.named_exports.append(name)

    def _call(self, node, facts: SourceFacts) -> None:
        callee = _callee_name(node)
        if callee in STATE_HOOKS:
            facts.has_state = True
        elif callee in EFFECT_HOOKS:
            facts.has_effects = True
        elif callee == "createContext":
            facts.defines_context = True
        elif callee == "require":
            self._require(node, facts)

    def _require(self, node, facts: SourceFacts) -> None:
        args = node.child_by_field_name("arguments")
        strings = [c for c in args.children if c.type == "string"] if args is not None else []
        if not strings:
            return
        source = _unquote(_text(strings[0]))
        parent = node.parent
        target = parent.child_by_field_name("name") if parent is not None and parent.type == "variable_declarator" else None
        if target is None:
            facts.imports.append(ImportInfo(source, [], False))
        elif target.type == "identifier":
            facts.imports.append(ImportInfo(source, [_text(target)], True))
        else:
            names = [
                _text(c.child_by_field_name("key") or c) if c.type == "pair_pattern" else _text(c)
                for c in target.children
                if c.type in {"shorthand_property_identifier_pattern", "pair_pattern"}
            ]
            facts.imports.append(ImportInfo(source, names, False))
