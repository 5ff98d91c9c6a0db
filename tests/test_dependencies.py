"""Tests for import extraction, resolution and graph assembly."""

import pytest

from codescope.config import AnalyzerConfig
from codescope.core.exceptions import ResolverUnavailableError
from codescope.dependencies import (
    DependencyGraphBuilder,
    ImportRef,
    PathResolver,
    find_cycles,
    package_name,
)
from codescope.models import EdgeKind, NodeKind


@pytest.fixture
def builder(config):
    return DependencyGraphBuilder(config)


def _graph(builder, files):
    imports = {f.path: builder.extract_imports(f) for f in files}
    return builder.build(files, imports)


class TestImportExtraction:
    """Static, require, dynamic and re-export forms."""

    def test_all_import_forms(self, builder, make_file):
        """Each form yields a reference with its kind and line."""
        source = (
            "import React, { useState } from 'react'\n"
            "import type { User } from './types'\n"
            "import './styles.css'\n"
            "const fs = require('fs')\n"
            "const Page = () => import('./page')\n"
            "export * from './shared'\n"
            "export { helper } from \"./helpers\"\n"
        )
        refs = builder.extract_imports(make_file("src/app.ts", source))
        assert [(r.target, r.kind, r.line) for r in refs] == [
            ("react", EdgeKind.IMPORT, 1),
            ("./types", EdgeKind.IMPORT, 2),
            ("./styles.css", EdgeKind.IMPORT, 3),
            ("fs", EdgeKind.REQUIRE, 4),
            ("./page", EdgeKind.DYNAMIC, 5),
            ("./shared", EdgeKind.IMPORT, 6),
            ("./helpers", EdgeKind.IMPORT, 7),
        ]

    def test_commented_imports_ignored(self, builder, make_file):
        """Imports inside comments are not extracted."""
        source = "// import x from './x'\n/* require('./y') */\nimport z from './z'\n"
        refs = builder.extract_imports(make_file("src/a.ts", source))
        assert [r.target for r in refs] == ["./z"]

    def test_vue_script_imports(self, builder, make_file):
        """Only imports inside the script block of a component are extracted."""
        source = "<template><div/></template>\n<script>\nimport Card from './Card.vue'\n</script>\n"
        refs = builder.extract_imports(make_file("src/App.vue", source))
        assert [r.target for r in refs] == ["./Card.vue"]


class TestPathResolver:
    """Resolution of import targets to file IDs or packages."""

    @pytest.fixture
    def resolver(self):
        ids = ["src/a", "src/b", "src/lib", "lib/x", "index"]
        return PathResolver(ids, {"@/": "", "~lib/": "lib/"})

    def test_relative(self, resolver):
        """Relative imports resolve against the importing file's directory."""
        target = resolver.resolve("src/a.ts", "./b")
        assert (target.kind, target.id) == ("file", "src/b")

    def test_relative_with_extension_and_index(self, resolver):
        """Extensions and /index are normalized away."""
        assert resolver.resolve("src/a.ts", "./b.js").id == "src/b"
        assert resolver.resolve("src/a.ts", "./lib/index").id == "src/lib"
        assert resolver.resolve("src/a.ts", "..").id == "index"

    def test_aliases(self, resolver):
        """Alias prefixes resolve from the repository root, longest first."""
        assert resolver.resolve("src/a.ts", "@/src/b").id == "src/b"
        assert resolver.resolve("src/a.ts", "~lib/x").id == "lib/x"

    def test_packages(self, resolver):
        """Bare specifiers become package names."""
        target = resolver.resolve("src/a.ts", "lodash/fp")
        assert (target.kind, target.id) == ("package", "lodash")
        assert resolver.resolve("src/a.ts", "@prisma/client/runtime").id == "@prisma/client"

    def test_unresolved_and_assets(self, resolver):
        """Missing files are unresolved; asset imports are ignored."""
        assert resolver.resolve("src/a.ts", "./missing").kind == "unresolved"
        assert resolver.resolve("src/a.ts", "../../outside").kind == "unresolved"
        assert resolver.resolve("src/a.ts", "./logo.svg").kind == "asset"

    def test_package_name(self):
        """Scoped packages keep their scope."""
        assert package_name("react-dom/client") == "react-dom"
        assert package_name("@scope/pkg/sub") == "@scope/pkg"


class TestFindCycles:
    """Cycle detection over an adjacency mapping."""

    def test_single_cycle(self):
        """A three-node loop is reported once."""
        cycles = find_cycles({"a": ["b"], "b": ["c"], "c": ["a"]}, 10)
        assert cycles == [["a", "b", "c"]]

    def test_no_cycle(self):
        """A DAG has no cycles."""
        assert find_cycles({"a": ["b", "c"], "b": ["c"], "c": []}, 10) == []

    def test_self_loop_ignored(self):
        """A file importing itself is not a cycle."""
        assert find_cycles({"a": ["a"]}, 10) == []

    def test_limit(self):
        """No more than max_cycles cycles are reported."""
        adjacency = {"a": ["b"], "b": ["a"], "c": ["d"], "d": ["c"]}
        assert len(find_cycles(adjacency, 10)) == 2
        assert len(find_cycles(adjacency, 1)) == 1
        assert find_cycles(adjacency, 0) == []

    def test_deep_chain_does_not_recurse(self):
        """Long chains are handled without recursion limits."""
        n = 5000
        adjacency = {str(i): [str(i + 1)] for i in range(n)}
        adjacency[str(n)] = ["0"]
        (cycle,) = find_cycles(adjacency, 10)
        assert len(cycle) == n + 1


class TestGraphBuild:
    """Graph assembly from files and extracted imports."""

    def test_nodes_edges_and_packages(self, builder, make_file):
        """File and package nodes are created; duplicate edges collapse."""
        files = [
            make_file("src/a.ts", "import { b } from './b'\nimport { b2 } from './b'\nimport React from 'react'\n"),
            make_file("src/b.ts", "export const b = 1\n"),
        ]
        graph = _graph(builder, files)
        ids = {n.id: n.kind for n in graph.nodes}
        assert ids == {"src/a": NodeKind.FILE, "src/b": NodeKind.FILE, "react": NodeKind.PACKAGE}
        assert [(e.source, e.target) for e in graph.edges] == [("src/a", "src/b"), ("src/a", "react")]
        assert graph.nodes[0].path == "src/a.ts"
        assert graph.nodes[0].name == "a.ts"

    def test_edge_endpoints_exist(self, builder, cycle_files, make_file):
        """Every edge connects two known nodes."""
        files = [make_file(f["path"], f["content"]) for f in cycle_files]
        graph = _graph(builder, files)
        ids = {n.id for n in graph.nodes}
        assert all(e.source in ids and e.target in ids for e in graph.edges)

    def test_cycle_and_orphans(self, builder, cycle_files, make_file):
        """a -> b -> c -> a is one cycle; files without edges are orphans."""
        files = [make_file(f["path"], f["content"]) for f in cycle_files]
        graph = _graph(builder, files)
        assert len(graph.circular_dependencies) == 1
        assert sorted(graph.circular_dependencies[0]) == ["src/a", "src/b", "src/c"]
        assert graph.orphan_files == ["src/d.ts", "src/e.ts"]

    def test_package_edge_is_not_orphan(self, builder, make_file):
        """A file that only imports a package still has an edge."""
        graph = _graph(builder, [make_file("src/a.ts", "import x from 'x'\n")])
        assert graph.orphan_files == []

    def test_unresolved_imports_recorded(self, builder, make_file):
        """Relative imports to unknown files produce no edge and are recorded."""
        graph = _graph(builder, [make_file("src/a.ts", "import x from './gone'\n")])
        assert graph.edges == []
        assert [(u.file_path, u.target) for u in graph.unresolved_imports] == [("src/a.ts", "./gone")]

    def test_package_id_collision(self, builder, make_file):
        """A package named like a local file gets a prefixed node ID."""
        files = [
            make_file("react.ts", "export {}\n"),
            make_file("app.ts", "import React from 'react'\n"),
        ]
        graph = _graph(builder, files)
        assert ("app", "pkg:react") in {(e.source, e.target) for e in graph.edges}

    def test_rankings(self, builder, make_file):
        """Fan-in and fan-out rankings are sorted by count."""
        files = [
            make_file("src/a.ts", "import './c'\nimport './b'\n"),
            make_file("src/b.ts", "import './c'\n"),
            make_file("src/c.ts", "export {}\n"),
        ]
        graph = _graph(builder, files)
        assert graph.most_imported[0].id == "src/c"
        assert graph.most_imported[0].count == 2
        assert graph.most_dependent[0].id == "src/a"

    def test_dynamic_edge_kind(self, builder, make_file):
        """Dynamic imports keep their kind on the edge."""
        files = [
            make_file("src/a.ts", "const m = import('./b')\n"),
            make_file("src/b.ts", "export {}\n"),
        ]
        (edge,) = _graph(builder, files).edges
        assert edge.kind is EdgeKind.DYNAMIC

    def test_complexity_attached_to_nodes(self, builder, make_file):
        """Summed function complexity is stored on file nodes."""
        files = [make_file("src/a.ts", "export {}\n")]
        graph = builder.build(files, {}, {"src/a.ts": 7})
        assert graph.nodes[0].complexity == 7

    def test_resolver_unavailable_propagates(self, make_file):
        """The builder lets the resolver's unavailability surface."""

        def unavailable(ids, aliases):
            raise ResolverUnavailableError("resolver offline")

        builder = DependencyGraphBuilder(AnalyzerConfig(), resolver_factory=unavailable)
        with pytest.raises(ResolverUnavailableError):
            builder.build([make_file("src/a.ts", "")], {"src/a.ts": [ImportRef("./b", EdgeKind.IMPORT, 1)]})
