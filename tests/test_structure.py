"""Tests for structural extraction with both parsing strategies."""

import pytest

from codescope.config import AnalyzerConfig
from codescope.core.exceptions import ParseError, UnsupportedLanguageError
from codescope.models import CodeStructure, ParseFailure
from codescope.parsing import HeuristicStrategy, ParsingStrategy, TreeSitterStrategy, script_view
from codescope.structure import StructuralExtractor, build_strategies

SERVICE_TS = """\
import { Repo } from './repo'

/**
 * Adds numbers.
 */
export async function add(a: number, b = 2, c?: string): Promise<number> {
  if (a > b && b > 0) {
    return a
  }
  return b
}

function plain(x) {
  const y = x + 1
  return y
}

export const double = (n: number) => n * 2

export class UserService extends BaseService implements Service, Disposable {
  private cache = new Map()

  constructor(private repo: Repo) {
    super()
  }

  async find(id: string) {
    return this.repo.get(id) ?? null
  }
}

export interface User extends Base, Named {
  id: string
  name?: string
  greet(): void
}

export type ID = string | number

export { plain }
export default UserService
"""

VUE_COMPONENT = """\
<template>
  <div @click="greet('x')">{{ msg }}</div>
</template>
<script setup lang="ts">
import { ref } from 'vue'
const msg = ref('hi')
function greet(name: string) {
  return `hi ${name}`
}
</script>
"""


@pytest.fixture(params=["tree-sitter", "heuristic"])
def strategy(request):
    """Each parsing strategy in turn."""
    if request.param == "tree-sitter":
        return TreeSitterStrategy()
    return HeuristicStrategy()


@pytest.fixture
def service_structure(strategy, make_file):
    """Structure of SERVICE_TS under the current strategy."""
    return strategy.parse(make_file("src/services/user.ts", SERVICE_TS))


def _function(structure: CodeStructure, name: str):
    matches = [fn for fn in structure.functions if fn.name == name]
    assert matches, f"function {name} not found"
    return matches[0]


class TestCommonExtraction:
    """Facts both strategies must agree on."""

    def test_strategies_satisfy_protocol(self, strategy):
        """Both strategies implement the ParsingStrategy protocol."""
        assert isinstance(strategy, ParsingStrategy)

    def test_function_declaration(self, service_structure):
        """Parameters, return type, async and export flags are extracted."""
        add = _function(service_structure, "add")
        assert add.file_path == "src/services/user.ts"
        assert add.start_line == 6
        assert add.end_line == 11
        assert add.is_async
        assert add.is_exported
        assert add.return_type == "Promise<number>"
        assert [p.name for p in add.parameters] == ["a", "b", "c"]
        assert add.parameters[1].default_value == "2"
        assert add.parameters[2].optional

    def test_complexity(self, service_structure):
        """Straight-line code is 1; branches and operators add to it."""
        assert _function(service_structure, "plain").complexity == 1
        assert _function(service_structure, "add").complexity == 3
        assert _function(service_structure, "find").complexity == 2

    def test_regex_literal_in_straight_line_code(self, strategy, make_file):
        """Quantifiers inside a regex literal leave complexity at 1."""
        source = "export function f(s) {\n  return /^a+?b*?$/.test(s)\n}\n"
        structure = strategy.parse(make_file("src/match.js", source))
        assert _function(structure, "f").complexity == 1

    def test_calls_to(self, service_structure):
        """Member calls give the member name; super() is not a call."""
        assert _function(service_structure, "find").calls_to == ["get"]
        assert _function(service_structure, "constructor").calls_to == []
        assert _function(service_structure, "plain").calls_to == []

    def test_unexported_function(self, service_structure):
        """A plain declaration is not exported."""
        plain = _function(service_structure, "plain")
        assert not plain.is_exported
        assert not plain.is_async

    def test_arrow_function(self, service_structure):
        """Arrow functions bound to a const are functions of kind arrow."""
        double = _function(service_structure, "double")
        assert double.kind == "arrow"
        assert double.is_exported
        assert [p.name for p in double.parameters] == ["n"]

    def test_class(self, service_structure):
        """Superclass, implemented interfaces and methods are recorded."""
        (cls,) = service_structure.classes
        assert cls.name == "UserService"
        assert cls.superclass == "BaseService"
        assert cls.interfaces == ["Service", "Disposable"]
        assert cls.methods == ["constructor", "find"]
        assert cls.is_exported

    def test_methods_are_functions(self, service_structure):
        """Methods appear among the functions with their class name."""
        find = _function(service_structure, "find")
        assert find.kind == "method"
        assert find.class_name == "UserService"
        assert find.is_async
        ctor = _function(service_structure, "constructor")
        assert [p.name for p in ctor.parameters] == ["repo"]

    def test_interface(self, service_structure):
        """Interfaces keep their extends list and member names."""
        (iface,) = service_structure.interfaces
        assert iface.name == "User"
        assert iface.extends == ["Base", "Named"]
        assert iface.properties == ["id", "name", "greet"]
        assert iface.is_exported

    def test_type_alias(self, service_structure):
        """Type aliases keep a whitespace-normalized definition."""
        (alias,) = service_structure.types
        assert alias.name == "ID"
        assert alias.definition == "string | number"
        assert alias.is_exported

    def test_exports(self, service_structure):
        """Declarations, export clauses and default exports are listed."""
        kinds = {(e.name, e.kind) for e in service_structure.exports}
        assert ("add", "function") in kinds
        assert ("double", "const") in kinds
        assert ("UserService", "class") in kinds
        assert ("User", "interface") in kinds
        assert ("ID", "type") in kinds
        assert ("plain", "named") in kinds
        assert ("UserService", "default") in kinds


class TestTreeSitterStrategy:
    """Behavior specific to the tree-sitter strategy."""

    def test_supported_languages(self):
        """JS, JSX, TS and TSX are supported; component files are not."""
        strategy = TreeSitterStrategy()
        for language in ("javascript", "jsx", "typescript", "tsx"):
            assert strategy.supports(language)
        assert not strategy.supports("vue")

    def test_parse_ast_rejects_unknown_language(self):
        """Unknown language tags raise UnsupportedLanguageError."""
        with pytest.raises(UnsupportedLanguageError):
            TreeSitterStrategy().parse_ast("x", "cobol")

    def test_class_field_arrow(self, make_file):
        """Arrow functions assigned to class fields belong to the class."""
        source = "class Button {\n  onClick = (e) => {\n    this.handle(e)\n  }\n}\n"
        structure = TreeSitterStrategy().parse(make_file("src/Button.ts", source))
        fn = _function(structure, "onClick")
        assert fn.class_name == "Button"
        assert fn.kind == "arrow"

    def test_recovers_from_syntax_errors(self, make_file):
        """Broken code still yields the declarations tree-sitter recovered."""
        source = "function ok() {\n  return 1\n}\n\nconst broken = (\n"
        structure = TreeSitterStrategy().parse(make_file("src/broken.js", source))
        assert "ok" in [fn.name for fn in structure.functions]

    def test_jsx_component(self, make_file):
        """JSX files parse with the JavaScript grammar."""
        source = "export function App() {\n  return <div>{ok ? 1 : 2}</div>\n}\n"
        structure = TreeSitterStrategy().parse(make_file("src/App.jsx", source))
        app = _function(structure, "App")
        assert app.complexity == 2
        assert ("App", "function") in {(e.name, e.kind) for e in structure.exports}


class TestHeuristicStrategy:
    """Behavior specific to the heuristic strategy."""

    def test_supports_everything(self):
        """The fallback accepts any language tag."""
        assert HeuristicStrategy().supports("vue")
        assert HeuristicStrategy().supports("anything")

    def test_ignores_code_in_comments_and_strings(self, make_file):
        """Declarations inside comments or literals are not reported."""
        source = "// function ghost() {}\nconst s = 'function fake() {}'\nfunction real() {}\n"
        structure = HeuristicStrategy().parse(make_file("src/a.js", source))
        assert [fn.name for fn in structure.functions] == ["real"]

    def test_backtick_in_regex_keeps_later_declarations(self, make_file):
        """A backtick inside a regex does not hide the rest of the file."""
        source = (
            "export function strip(s) {\n"
            "  return s.replace(/`/g, '')\n"
            "}\n"
            "\n"
            "function later(x) {\n"
            "  return x\n"
            "}\n"
            "\n"
            "class Svc {\n"
            "  run() {}\n"
            "}\n"
        )
        structure = HeuristicStrategy().parse(make_file("src/strip.js", source))
        names = [fn.name for fn in structure.functions]
        assert "strip" in names
        assert "later" in names
        assert [cls.name for cls in structure.classes] == ["Svc"]

    def test_vue_script_block(self, make_file):
        """Only the script block of a component file is parsed."""
        structure = HeuristicStrategy().parse(make_file("src/Hello.vue", VUE_COMPONENT))
        greet = _function(structure, "greet")
        assert greet.start_line == 7
        assert [p.name for p in greet.parameters] == ["name"]

    def test_script_view_blanks_template(self):
        """Template markup is blanked; line structure is kept."""
        view = script_view(VUE_COMPONENT, "vue")
        assert "msg }}" not in view
        assert "function greet" in view
        assert view.count("\n") == VUE_COMPONENT.count("\n")

    def test_script_view_passthrough(self):
        """Non-component languages are returned unchanged."""
        assert script_view("const a = 1", "typescript") == "const a = 1"


class _FailingStrategy:
    name = "failing"

    def supports(self, language):
        return True

    def parse(self, file):
        raise RuntimeError("boom")


class TestStructuralExtractor:
    """Strategy dispatch and failure isolation."""

    def test_build_strategies_order(self):
        """tree-sitter comes first unless disabled."""
        names = [s.name for s in build_strategies(AnalyzerConfig())]
        assert names == ["tree-sitter", "heuristic"]
        names = [s.name for s in build_strategies(AnalyzerConfig(use_tree_sitter=False))]
        assert names == ["heuristic"]

    def test_dispatch_by_language(self):
        """Vue goes to the heuristic strategy, TypeScript to tree-sitter."""
        extractor = StructuralExtractor(build_strategies(AnalyzerConfig()))
        assert extractor.strategy_for("vue").name == "heuristic"
        assert extractor.strategy_for("typescript").name == "tree-sitter"

    def test_no_strategy_for_language(self, make_file):
        """Without a capable strategy the file becomes a ParseFailure."""
        extractor = StructuralExtractor([TreeSitterStrategy()])
        with pytest.raises(UnsupportedLanguageError):
            extractor.strategy_for("vue")
        result = extractor.extract(make_file("src/a.vue", VUE_COMPONENT))
        assert isinstance(result, ParseFailure)
        assert result.strategy == "none"

    def test_strategy_failure_is_contained(self, make_file):
        """A raising strategy produces a ParseFailure instead of an exception."""
        extractor = StructuralExtractor([_FailingStrategy()])
        result = extractor.extract(make_file("src/a.ts", "const a = 1"))
        assert isinstance(result, ParseFailure)
        assert result.file_path == "src/a.ts"
        assert result.strategy == "failing"
        assert "boom" in result.error

    def test_parse_error_carries_strategy(self, make_file):
        """A ParseError names the strategy that raised it."""

        class _Raising(_FailingStrategy):
            name = "outer"

            def parse(self, file):
                raise ParseError("bad input", file.path, "inner")

        result = StructuralExtractor([_Raising()]).extract(make_file("src/a.ts", "x"))
        assert result.strategy == "inner"

    def test_requires_a_strategy(self):
        """An empty strategy list is rejected."""
        with pytest.raises(ValueError):
            StructuralExtractor([])
