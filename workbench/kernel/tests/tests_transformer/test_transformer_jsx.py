"""
Transformer -- JSX lowering

JSX becomes React.createElement(tag, props, ...children):
  - lowercase and dashed tags are strings, everything else an expression
  - props are an object literal, or null
  - text children follow React's whitespace rules and decode entities
  - fragments use React.Fragment
  - a file that uses JSX without binding React gets `import React from "react"`
"""

from workbench.kernel.ts_lowering import LoweringOptions, lower_source

PREAMBLE = 'import React from "react";\n'


def jsx(source: str) -> str:
    """Lower a single expression statement and strip the React preamble."""
    code = lower_source(source, "tsx").code
    assert code.startswith(PREAMBLE)
    return code[len(PREAMBLE):]


class TestElements:
    def test_intrinsic_element(self):
        assert jsx('<div className="a">Hi</div>;') == 'React.createElement("div", { className: "a" }, "Hi");'

    def test_component_element(self):
        assert jsx("<Button />;") == "React.createElement(Button, null);"

    def test_member_tag(self):
        assert jsx("<Foo.Bar />;") == "React.createElement(Foo.Bar, null);"

    def test_custom_element_tag(self):
        assert jsx("<my-widget />;") == 'React.createElement("my-widget", null);'

    def test_fragment(self):
        assert jsx("<><A /></>;") == "React.createElement(React.Fragment, null, React.createElement(A, null));"

    def test_nested_children(self):
        assert jsx("<ul><li>a</li><li>b</li></ul>;") == (
            'React.createElement("ul", null, '
            'React.createElement("li", null, "a"), '
            'React.createElement("li", null, "b"));'
        )


class TestAttributes:
    def test_boolean_and_spread(self):
        assert jsx("<input {...props} disabled />;") == (
            'React.createElement("input", { ...props, disabled: true });'
        )

    def test_expression_value(self):
        assert jsx("<button onClick={() => go(1)}>x</button>;") == (
            'React.createElement("button", { onClick: () => go(1) }, "x");'
        )

    def test_dashed_name_is_quoted(self):
        assert jsx('<div data-id="1" aria-label="x" />;') == (
            'React.createElement("div", { "data-id": "1", "aria-label": "x" });'
        )

    def test_string_entities_decoded(self):
        assert jsx('<a title="a &quot;b&quot; &amp; c" />;') == (
            'React.createElement("a", { title: "a \\"b\\" & c" });'
        )

    def test_element_valued_attribute(self):
        code = jsx("<Layout header={<Title />} />;")
        assert code == "React.createElement(Layout, { header: React.createElement(Title, null) });"


class TestChildren:
    def test_expression_child(self):
        assert jsx("<p>{name}</p>;") == 'React.createElement("p", null, name);'

    def test_mixed_text_and_expressions(self):
        assert jsx("<p>Hello, {name}!</p>;") == 'React.createElement("p", null, "Hello, ", name, "!");'

    def test_multiline_text_whitespace(self):
        source = "<p>\n  Hello   world\n  again\n</p>;"
        assert jsx(source) == 'React.createElement("p", null, "Hello   world again");'

    def test_whitespace_only_lines_dropped(self):
        source = "<div>\n  <A />\n  <B />\n</div>;"
        assert jsx(source) == (
            'React.createElement("div", null, React.createElement(A, null), React.createElement(B, null));'
        )

    def test_entities_in_text(self):
        assert jsx("<p>a &amp; b &lt; c</p>;") == 'React.createElement("p", null, "a & b < c");'

    def test_empty_and_comment_expressions_skipped(self):
        assert jsx("<p>{/* note */}{}</p>;") == 'React.createElement("p", null);'

    def test_conditional_child(self):
        assert jsx("<p>{ok && <b>yes</b>}</p>;") == (
            'React.createElement("p", null, ok && React.createElement("b", null, "yes"));'
        )

    def test_mapped_children(self):
        code = jsx("<ul>{items.map((i) => <li key={i}>{i}</li>)}</ul>;")
        assert code == (
            'React.createElement("ul", null, items.map((i) => '
            'React.createElement("li", { key: i }, i)));'
        )


class TestReactBinding:
    def test_react_import_is_added_first(self):
        result = lower_source('import "./styles.css";\nexport default () => <div />;', "tsx")
        assert result.code.startswith(PREAMBLE)
        assert result.imports == ("react", "./styles.css")
        assert result.uses_jsx

    def test_existing_react_binding_is_kept(self):
        result = lower_source('import React from "react";\nexport default () => <div />;', "tsx")
        assert result.code.count("import React") == 1
        assert result.imports == ("react",)

    def test_named_react_import_still_needs_default(self):
        result = lower_source('import { useState } from "react";\nconst a = <div />;', "tsx")
        assert result.code.startswith(PREAMBLE)
        assert result.imports == ("react",)

    def test_no_jsx_no_preamble(self):
        result = lower_source("export const x = 1;", "tsx")
        assert result.code == "export const x = 1;"
        assert result.imports == ()
        assert not result.uses_jsx

    def test_preamble_has_an_import_site(self):
        result = lower_source("const a = <div />;", "tsx")
        site = result.import_sites[0]
        assert result.code[site.start:site.end] == '"react"'

    def test_custom_factory(self):
        options = LoweringOptions(jsx_factory="h", jsx_fragment="Fragment", jsx_import_source=None)
        result = lower_source("<><a /></>;", "tsx", options)
        assert result.code == 'h(Fragment, null, h("a", null));'
        assert result.imports == ()
