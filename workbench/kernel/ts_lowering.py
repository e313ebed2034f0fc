"""
Workbench Kernel — TypeScript / JSX Lowering

Uses tree-sitter to parse component source and lower it to plain ES module
code that a browser can execute directly:

  - type syntax is removed (annotations, generics, interfaces, type aliases,
    declare blocks, overloads, assertions, access modifiers, type-only imports)
  - enums become frozen objects, constructor parameter properties become
    assignments
  - JSX becomes React.createElement(...) calls

Import specifiers are collected in first-seen order. Each emitted specifier
literal is recorded as an ImportSite so callers can relink the code without
parsing it again.

The lowering is a pure function of (source, dialect, options).
"""

from __future__ import annotations

import html
import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import tree_sitter_typescript as _ts_mod
from tree_sitter import Language, Parser

_TYPESCRIPT = Language(_ts_mod.language_typescript())
_TSX = Language(_ts_mod.language_tsx())

_PARSERS: dict[str, Parser] = {
    "typescript": Parser(_TYPESCRIPT),
    "tsx": Parser(_TSX),
}

DIALECTS = tuple(_PARSERS)


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoweringOptions:
    """How JSX is lowered."""

    jsx_factory: str = "React.createElement"
    jsx_fragment: str = "React.Fragment"
    # Module imported as `React` when a file uses JSX without binding it.
    # None disables the automatic import.
    jsx_import_source: str | None = "react"


@dataclass(frozen=True)
class ImportSite:
    """Character span of one emitted specifier literal (quotes included)."""

    start: int
    end: int
    specifier: str


@dataclass(frozen=True)
class LoweredModule:
    code: str
    imports: tuple[str, ...]
    import_sites: tuple[ImportSite, ...] = field(default_factory=tuple)
    uses_jsx: bool = False


class LoweringError(Exception):
    """Source could not be parsed or uses an unsupported construct."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line


Lowerer = Callable[[str, str, LoweringOptions], LoweredModule]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def lower_source(
    source: str,
    dialect: str = "tsx",
    options: LoweringOptions | None = None,
) -> LoweredModule:
    """
    Parse `source` with the given grammar ("tsx" or "typescript") and lower it.

    Raises LoweringError on the first syntax error (with its 1-based line)
    or on constructs that have no plain-JS equivalent here.
    """
    if dialect not in _PARSERS:
        raise ValueError(f"Unknown dialect {dialect!r}; expected one of {DIALECTS}")
    if _SENTINEL in source:
        raise LoweringError("Source contains NUL characters", 1)

    tree = _PARSERS[dialect].parse(source.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        raise _syntax_error(root)

    lowering = _Lowering(source.encode("utf-8"), options or LoweringOptions())
    body = lowering.emit(root)

    imports = list(lowering.imports)
    preamble = ""
    if lowering.uses_jsx and not lowering.react_bound and lowering.options.jsx_import_source:
        react_source = lowering.options.jsx_import_source
        preamble = f"import React from {lowering.site(react_source)};\n"
        if react_source in imports:
            imports.remove(react_source)
        imports.insert(0, react_source)

    code, sites = _finalize(preamble + body, lowering.sites)
    return LoweredModule(
        code=code,
        imports=tuple(imports),
        import_sites=tuple(sites),
        uses_jsx=lowering.uses_jsx,
    )


# ---------------------------------------------------------------------------
# Syntax errors
# ---------------------------------------------------------------------------


def _syntax_error(root: Any) -> LoweringError:
    """Describe the first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_missing:
            return LoweringError(f"Missing {node.type!r}", node.start_point[0] + 1)
        if node.type == "ERROR":
            snippet = node.text.decode("utf-8", errors="replace").strip().splitlines()
            near = snippet[0][:40] if snippet else ""
            message = f"Unexpected token near {near!r}" if near else "Unexpected token"
            return LoweringError(message, node.start_point[0] + 1)
        if node.has_error:
            stack.extend(reversed(node.children))
    return LoweringError("Syntax error", 1)


# ---------------------------------------------------------------------------
# Specifier placeholders
# ---------------------------------------------------------------------------

# Specifier literals are emitted as \x00<index>\x00 while lowering, then
# replaced with JSON string literals once the final offsets are known.
_SENTINEL = "\x00"
_SITE_RE = re.compile(r"\x00(\d+)\x00")


def _finalize(code: str, specifiers: list[str]) -> tuple[str, list[ImportSite]]:
    out: list[str] = []
    sites: list[ImportSite] = []
    length = 0
    pos = 0
    for match in _SITE_RE.finditer(code):
        chunk = code[pos:match.start()]
        out.append(chunk)
        length += len(chunk)
        specifier = specifiers[int(match.group(1))]
        literal = json.dumps(specifier)
        sites.append(ImportSite(length, length + len(literal), specifier))
        out.append(literal)
        length += len(literal)
        pos = match.end()
    out.append(code[pos:])
    return "".join(out), sites


# ---------------------------------------------------------------------------
# Lowering
# ---------------------------------------------------------------------------

# Type-only nodes that vanish wherever they appear in value positions.
_REMOVED_NODES = frozenset({
    "type_annotation",
    "type_parameters",
    "type_arguments",
    "asserts_annotation",
    "type_predicate_annotation",
    "accessibility_modifier",
    "override_modifier",
    "implements_clause",
    "interface_declaration",
    "type_alias_declaration",
    "ambient_declaration",
    "function_signature",
    "abstract_method_signature",
    "method_signature",
    "index_signature",
})

_TYPE_ONLY_DECLARATIONS = frozenset({
    "interface_declaration",
    "type_alias_declaration",
    "ambient_declaration",
    "function_signature",
})

# Expression wrappers whose first named child is the runtime value.
_UNWRAPPED_EXPRESSIONS = frozenset({
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "instantiation_expression",
})

_JSX_ELEMENTS = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
_JSX_TEXT = frozenset({"jsx_text", "html_character_reference"})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")


class _Lowering:
    def __init__(self, source: bytes, options: LoweringOptions) -> None:
        self.src = source
        self.options = options
        self.imports: dict[str, None] = {}
        self.sites: list[str] = []
        self.uses_jsx = False
        self.react_bound = False

    # -- helpers --

    def text(self, node: Any) -> str:
        return self.src[node.start_byte:node.end_byte].decode("utf-8")

    def between(self, start: int, end: int) -> str:
        return self.src[start:end].decode("utf-8")

    def site(self, specifier: str) -> str:
        self.sites.append(specifier)
        return f"{_SENTINEL}{len(self.sites) - 1}{_SENTINEL}"

    def record(self, specifier: str) -> str:
        self.imports.setdefault(specifier, None)
        return self.site(specifier)

    def unsupported(self, node: Any, what: str) -> LoweringError:
        return LoweringError(f"{what} are not supported", node.start_point[0] + 1)

    # -- generic emission --

    def emit(self, node: Any) -> str:
        kind = node.type
        if kind in _REMOVED_NODES:
            return ""
        if kind in _UNWRAPPED_EXPRESSIONS:
            return self.emit(node.named_children[0])
        if not node.is_named and kind == "readonly":
            return ""
        handler = getattr(self, f"_emit_{kind}", None)
        if handler is not None:
            return handler(node)
        if kind in _JSX_ELEMENTS:
            return self.emit_jsx(node)
        return self.emit_children(node)

    def emit_children(
        self,
        node: Any,
        override: Callable[[Any], str | None] | None = None,
    ) -> str:
        """
        Re-emit a node from its source text, lowering each child.
        `override(child)` may return replacement text for a child.
        """
        if node.child_count == 0:
            return self.text(node)
        out: list[str] = []
        pos = node.start_byte
        for child in node.children:
            out.append(self.between(pos, child.start_byte))
            replacement = override(child) if override is not None else None
            out.append(self.emit(child) if replacement is None else replacement)
            pos = child.end_byte
        out.append(self.between(pos, node.end_byte))
        return "".join(out)

    def drop_tokens(self, node: Any, *tokens: str) -> str:
        """Emit a node without the given anonymous tokens."""
        return self.emit_children(
            node,
            lambda child: "" if not child.is_named and child.type in tokens else None,
        )

    # -- imports and exports --

    def _emit_import_statement(self, node: Any) -> str:
        if any(not c.is_named and c.type == "type" for c in node.children):
            return ""
        for child in node.named_children:
            if child.type == "import_require_clause":
                raise self.unsupported(node, "'import = require()' declarations")

        source = node.child_by_field_name("source")
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        clause_text: str | None = None
        if clause is not None:
            clause_text = self._lower_import_clause(clause)
            if clause_text is None:
                return ""

        specifier = _string_value(source, self.src)
        literal = self.record(specifier)

        def override(child: Any) -> str | None:
            if child == source:
                return literal
            if clause is not None and child == clause:
                return clause_text
            return None

        return self.emit_children(node, override)

    def _lower_import_clause(self, clause: Any) -> str | None:
        """
        Lowered import clause text, or None when every binding is type-only
        and the whole import should be elided.
        """
        parts: list[str] = []
        had_named = False
        for child in clause.named_children:
            if child.type == "identifier":
                parts.append(self.text(child))
                if self.text(child) == "React":
                    self.react_bound = True
            elif child.type == "namespace_import":
                parts.append(self.text(child))
                if any(self.text(c) == "React" for c in child.named_children):
                    self.react_bound = True
            elif child.type == "named_imports":
                had_named = True
                kept = [
                    self.text(spec)
                    for spec in child.named_children
                    if spec.type == "import_specifier" and not _is_type_only(spec)
                ]
                for spec in child.named_children:
                    if spec.type == "import_specifier" and not _is_type_only(spec):
                        alias = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                        if alias is not None and self.text(alias) == "React":
                            self.react_bound = True
                if kept:
                    parts.append("{ " + ", ".join(kept) + " }")
        if not parts:
            return None if had_named else self.text(clause)
        return ", ".join(parts)

    def _emit_export_statement(self, node: Any) -> str:
        if any(not c.is_named and c.type == "type" for c in node.children):
            return ""
        declaration = node.child_by_field_name("declaration")
        if declaration is not None and declaration.type in _TYPE_ONLY_DECLARATIONS:
            return ""
        if any(c.type == "interface_declaration" for c in node.named_children):
            return ""
        if any(not c.is_named and c.type == "=" for c in node.children):
            raise self.unsupported(node, "'export =' assignments")

        source = node.child_by_field_name("source")
        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        clause_text: str | None = None
        if clause is not None:
            specs = [c for c in clause.named_children if c.type == "export_specifier"]
            kept = [self.text(s) for s in specs if not _is_type_only(s)]
            if specs and not kept:
                return ""
            clause_text = "{ " + ", ".join(kept) + " }" if kept else self.text(clause)

        literal = self.record(_string_value(source, self.src)) if source is not None else None

        def override(child: Any) -> str | None:
            if source is not None and child == source:
                return literal
            if clause is not None and child == clause:
                return clause_text
            return None

        return self.emit_children(node, override)

    def _emit_call_expression(self, node: Any) -> str:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is not None and function.type == "import" and arguments is not None:
            args = arguments.named_children
            if args and args[0].type == "string":
                first = args[0]
                literal = self.record(_string_value(first, self.src))
                return self.emit_children(
                    node,
                    lambda child: (
                        self.emit_children(child, lambda arg: literal if arg == first else None)
                        if child == arguments
                        else None
                    ),
                )
        return self.emit_children(node)

    # -- type syntax inside value positions --

    def _emit_type_assertion(self, node: Any) -> str:
        # <T>expr
        return self.emit(node.named_children[-1])

    def _emit_optional_parameter(self, node: Any) -> str:
        return self.drop_tokens(node, "?")

    def _emit_variable_declarator(self, node: Any) -> str:
        return self.drop_tokens(node, "!")

    def _emit_public_field_definition(self, node: Any) -> str:
        if any(not c.is_named and c.type in ("declare", "abstract") for c in node.children):
            return ""
        return self.drop_tokens(node, "?", "!")

    def _emit_abstract_class_declaration(self, node: Any) -> str:
        return self.drop_tokens(node, "abstract")

    def _emit_internal_module(self, node: Any) -> str:
        raise self.unsupported(node, "Namespaces")

    def _emit_module(self, node: Any) -> str:
        raise self.unsupported(node, "Module declarations")

    def _emit_method_definition(self, node: Any) -> str:
        name = node.child_by_field_name("name")
        if name is None or self.text(name) != "constructor":
            return self.drop_tokens(node, "?")

        properties = self._parameter_properties(node.child_by_field_name("parameters"))
        body = node.child_by_field_name("body")
        if not properties or body is None:
            return self.drop_tokens(node, "?")

        assignments = "".join(f" this.{p} = {p};" for p in properties)
        statements = body.named_children
        anchor = None
        if statements and _is_super_call(statements[0]):
            anchor = statements[0]

        def lower_body(child: Any) -> str | None:
            if anchor is None and not child.is_named and child.type == "{":
                return "{" + assignments
            if anchor is not None and child == anchor:
                return self.emit(child) + assignments
            return None

        return self.emit_children(
            node,
            lambda child: self.emit_children(child, lower_body) if child == body else None,
        )

    def _parameter_properties(self, parameters: Any) -> list[str]:
        names: list[str] = []
        if parameters is None:
            return names
        for param in parameters.named_children:
            if param.type not in ("required_parameter", "optional_parameter"):
                continue
            is_property = any(
                c.type in ("accessibility_modifier", "override_modifier")
                or (not c.is_named and c.type == "readonly")
                for c in param.children
            )
            pattern = param.child_by_field_name("pattern")
            if is_property and pattern is not None and pattern.type == "identifier":
                names.append(self.text(pattern))
        return names

    def _emit_enum_declaration(self, node: Any) -> str:
        name = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        members: list[str] = []
        next_value: str | None = "0"
        for member in body.named_children if body is not None else []:
            if member.type == "enum_assignment":
                key_node = member.child_by_field_name("name") or member.named_children[0]
                value_node = member.child_by_field_name("value") or member.named_children[-1]
                value = self.emit(value_node)
                if value_node.type == "number":
                    next_value = _increment(self.text(value_node))
                elif value_node.type in ("string", "template_string"):
                    next_value = None
                else:
                    next_value = f"({value}) + 1"
            elif member.type in ("property_identifier", "string", "identifier"):
                key_node = member
                if next_value is None:
                    raise LoweringError("Enum member must have an initializer", member.start_point[0] + 1)
                value = next_value
                next_value = _increment(value) if _is_number(value) else f"({value}) + 1"
            else:
                continue
            members.append(f"{self.text(key_node)}: {value}")
        return f"const {self.text(name)} = Object.freeze({{ {', '.join(members)} }});"

    # -- JSX --

    def emit_jsx(self, node: Any) -> str:
        self.uses_jsx = True
        if node.type == "jsx_self_closing_element":
            tag = self._jsx_tag(node)
            props = self._jsx_props(node)
            children: list[str] = []
        elif node.type == "jsx_fragment":
            tag = self.options.jsx_fragment
            props = "null"
            tokens = node.children
            children = self._jsx_children(node, tokens[1].end_byte, tokens[-3].start_byte)
        else:
            opening = node.child_by_field_name("open_tag") or node.children[0]
            closing = node.child_by_field_name("close_tag") or node.children[-1]
            tag = self._jsx_tag(opening)
            props = self._jsx_props(opening)
            children = self._jsx_children(node, opening.end_byte, closing.start_byte)
        args = ", ".join([tag, props, *children])
        return f"{self.options.jsx_factory}({args})"

    def _jsx_tag(self, element: Any) -> str:
        name = element.child_by_field_name("name")
        if name is None:
            return self.options.jsx_fragment
        text = self.text(name)
        if name.type == "identifier":
            if text[0].islower() or "-" in text:
                return json.dumps(text)
            return text
        if name.type == "jsx_namespace_name":
            return json.dumps(text)
        # member_expression / nested_identifier: <Foo.Bar>
        return text

    def _jsx_props(self, element: Any) -> str:
        props: list[str] = []
        for child in element.named_children:
            if child.type == "jsx_attribute":
                props.append(self._jsx_attribute(child))
            elif child.type == "jsx_expression":
                spread = next((c for c in child.named_children if c.type == "spread_element"), None)
                if spread is not None:
                    props.append(self.emit(spread))
        if not props:
            return "null"
        return "{ " + ", ".join(props) + " }"

    def _jsx_attribute(self, attribute: Any) -> str:
        parts = attribute.named_children
        key = self.text(parts[0])
        if not _IDENTIFIER_RE.match(key):
            key = json.dumps(key)
        if len(parts) < 2:
            return f"{key}: true"
        value = parts[1]
        if value.type in ("string", "jsx_string"):
            raw = self.text(value)[1:-1]
            return f"{key}: {json.dumps(html.unescape(raw))}"
        if value.type == "jsx_expression":
            inner = _expression_of(value)
            return f"{key}: {self.emit(inner) if inner is not None else 'undefined'}"
        return f"{key}: {self.emit(value)}"

    def _jsx_children(self, element: Any, start: int, end: int) -> list[str]:
        children: list[str] = []
        pos = start
        for child in element.named_children:
            if child.start_byte < start or child.end_byte > end or child.type in _JSX_TEXT:
                continue
            _append_jsx_text(children, self.between(pos, child.start_byte))
            pos = child.end_byte
            if child.type == "comment":
                continue
            if child.type == "jsx_expression":
                inner = _expression_of(child)
                if inner is not None:
                    children.append(self.emit(inner))
            else:
                children.append(self.emit(child))
        _append_jsx_text(children, self.between(pos, end))
        return children


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_type_only(specifier: Any) -> bool:
    """True for `type Foo` inside import/export braces."""
    return any(not c.is_named and c.type == "type" for c in specifier.children)


def _is_super_call(statement: Any) -> bool:
    if statement.type != "expression_statement" or not statement.named_children:
        return False
    expr = statement.named_children[0]
    if expr.type != "call_expression":
        return False
    function = expr.child_by_field_name("function")
    return function is not None and function.type == "super"


def _expression_of(jsx_expression: Any) -> Any | None:
    """The expression inside `{...}`, or None for `{}` / `{/* comment */}`."""
    for child in jsx_expression.named_children:
        if child.type != "comment":
            return child
    return None


def _string_value(node: Any, src: bytes) -> str:
    """Decoded value of a string literal node."""
    raw = src[node.start_byte:node.end_byte].decode("utf-8")
    pieces: list[str] = []
    for child in node.named_children:
        text = src[child.start_byte:child.end_byte].decode("utf-8")
        if child.type == "escape_sequence":
            try:
                pieces.append(json.loads(f'"{text}"'))
            except json.JSONDecodeError:
                pieces.append(text[1:])
        else:
            pieces.append(text)
    if not node.named_children:
        return raw[1:-1]
    return "".join(pieces)


def _append_jsx_text(children: list[str], raw: str) -> None:
    """Apply React's JSX whitespace rules to a text run and append it if non-empty."""
    text = _clean_jsx_text(html.unescape(raw))
    if text:
        children.append(json.dumps(text))


def _clean_jsx_text(value: str) -> str:
    lines = _LINE_BREAK_RE.split(value)
    last_non_empty = -1
    for i, line in enumerate(lines):
        if re.search(r"[^ \t]", line):
            last_non_empty = i

    result = ""
    for i, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if i != 0:
            trimmed = trimmed.lstrip(" ")
        if i != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if i != last_non_empty:
                trimmed += " "
            result += trimmed
    return result


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _increment(text: str) -> str | None:
    """`text + 1` for a decimal numeric literal, or None if it is not one."""
    try:
        value = int(text, 0) if not any(c in text for c in ".eE") else float(text)
    except ValueError:
        return None
    result = value + 1
    if isinstance(result, float) and result.is_integer():
        return str(int(result))
    return str(result)
