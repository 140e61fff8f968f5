"""Tests for the pattern-based source-fact extractor."""

import textwrap
from pathlib import Path

import pytest

from graft.analyzers.extractors import (
    PatternExtractor,
    RouteDefinition,
    detect_state_library,
    element_component,
    extract_api_endpoints,
    extract_exports,
    extract_imports,
    extract_jsx_routes,
    extract_prop_types,
    extract_routes,
    extract_table_routes,
    join_route_path,
    strip_comments,
)
from graft.analyzers.models import ImportInfo
from graft.errors import ExtractionError


# ── Imports & exports ───────────────────────────────────────────────────


class TestImports:
    def test_import_forms(self):
        code = textwrap.dedent("""\
            import React, { useState, useEffect as useFx } from 'react';
            import * as api from './api';
            import type { User } from './types';
            import './index.css';
            const fs = require('fs');
            const { join, resolve } = require('path');
        """)
        assert extract_imports(code) == [
            ImportInfo("react", ["React", "useState", "useEffect"], True),
            ImportInfo("./api", ["api"], False),
            ImportInfo("./types", ["User"], False),
            ImportInfo("./index.css", [], False),
            ImportInfo("fs", ["fs"], True),
            ImportInfo("path", ["join", "resolve"], False),
        ]

    def test_multiline_named_import(self):
        code = "import {\n  Route,\n  Routes,\n} from 'react-router-dom';\n"
        assert extract_imports(code) == [ImportInfo("react-router-dom", ["Route", "Routes"], False)]


class TestExports:
    def test_named_and_default(self):
        code = textwrap.dedent("""\
            export const API_URL = '/api';
            export function useThing() {}
            export class Store {}
            export { helper, other as renamed, type Foo };
            export default function Page() {}
        """)
        default, has_default, named = extract_exports(code)
        assert default == "Page"
        assert has_default is True
        assert named == ["API_URL", "useThing", "Store", "helper", "renamed"]

    def test_anonymous_default(self):
        assert extract_exports("export default () => <div />;\n") == (None, True, [])

    def test_default_via_export_list(self):
        assert extract_exports("const Foo = 1;\nexport { Foo as default };\n") == (None, True, [])

    def test_default_identifier(self):
        assert extract_exports("export default Settings;\n")[0] == "Settings"

    @pytest.mark.parametrize("line, expected", [
        ("export default memo(LoginPage);", "LoginPage"),
        ("export default connect(mapState)(UserList);", "UserList"),
        ("export default withRouter(Profile)", "Profile"),
    ])
    def test_wrapped_default(self, line, expected):
        assert extract_exports(line + "\n")[0] == expected

    def test_anonymous_class_default(self):
        assert extract_exports("export default class extends Component {}\n")[0] is None

    def test_identifier_starting_with_keyword(self):
        assert extract_exports("export default classNames;\n")[0] == "classNames"

    def test_no_exports(self):
        assert extract_exports("console.log('hi');\n") == (None, False, [])


# ── Hooks, props, comments ──────────────────────────────────────────────


class TestPatternExtractor:
    def test_hooks_and_context(self):
        code = textwrap.dedent("""\
            import React from 'react';
            export const Ctx = React.createContext<string>('x');
            export function Counter() {
              const [n, setN] = React.useState<number>(0);
              useLayoutEffect(() => {}, []);
              return <span>{n}</span>;
            }
        """)
        facts = PatternExtractor().extract(Path("Counter.tsx"), code)
        assert facts.has_state is True
        assert facts.has_effects is True
        assert facts.defines_context is True
        assert facts.named_exports == ["Ctx", "Counter"]
        assert facts.has_exports is True

    def test_commented_hooks_ignored(self):
        code = textwrap.dedent("""\
            // const [a, setA] = useState(0);
            /* useEffect(() => {}, []); */
            export const Plain = () => <div />;
        """)
        facts = PatternExtractor().extract(Path("Plain.tsx"), code)
        assert facts.has_state is False
        assert facts.has_effects is False

    def test_reducer_counts_as_state(self):
        facts = PatternExtractor().extract(Path("a.js"), "const [s, d] = useReducer(r, {});\n")
        assert facts.has_state is True

    def test_binary_content_raises(self):
        with pytest.raises(ExtractionError):
            PatternExtractor().extract(Path("blob.js"), "abc\x00def")

    def test_file_without_exports(self):
        facts = PatternExtractor().extract(Path("main.tsx"), "ReactDOM.render(<App />, root);\n")
        assert facts.has_exports is False


class TestStripComments:
    def test_keeps_urls_in_strings(self):
        code = "const url = 'http://example.com/api';\n// gone\n"
        stripped = strip_comments(code)
        assert "http://example.com/api" in stripped
        assert "gone" not in stripped

    def test_block_comment_preserves_line_count(self):
        code = "a\n/* one\ntwo\nthree */\nb\n"
        assert strip_comments(code).count("\n") == code.count("\n")


class TestPropTypes:
    def test_interface_and_type_alias(self):
        code = textwrap.dedent("""\
            interface CardProps {
              title: string;
              subtitle?: string;
            }
            type ButtonProps = {
              onClick?: () => void;
              style?: { color: string };
              variant: 'primary' | 'secondary';
            };
        """)
        props = extract_prop_types(code)
        assert [(p.name, p.required) for p in props["CardProps"]] == [
            ("title", True),
            ("subtitle", False),
        ]
        assert props["CardProps"][0].type == "string"
        assert [(p.name, p.required) for p in props["ButtonProps"]] == [
            ("onClick", False),
            ("style", False),
            ("variant", True),
        ]

    def test_non_props_types_ignored(self):
        assert extract_prop_types("interface User { id: string }\n") == {}


# ── Routes ──────────────────────────────────────────────────────────────


class TestJsxRoutes:
    def test_nested_layout_and_guard(self, react_app):
        routes = extract_jsx_routes((react_app / "src" / "App.tsx").read_text())
        assert routes == [
            RouteDefinition("/login", "Login", False, None),
            RouteDefinition("/", "Layout", False, None),
            RouteDefinition("/", "Home", False, "Layout"),
            RouteDefinition("/dashboard", "Dashboard", True, "Layout"),
            RouteDefinition("/settings", "Settings", True, "Layout"),
        ]

    def test_wrapped_element(self):
        code = textwrap.dedent("""\
            <Routes>
              <Route path="/admin" element={<RequireAuth><Admin /></RequireAuth>} />
              <Route path={'/reports'} element={<Suspense fallback={<Spinner />}><Reports /></Suspense>} />
              <Route path='/legacy' component={Legacy} />
            </Routes>
        """)
        assert extract_jsx_routes(code) == [
            RouteDefinition("/admin", "Admin", True, None),
            RouteDefinition("/reports", "Reports", False, None),
            RouteDefinition("/legacy", "Legacy", False, None),
        ]

    def test_catch_all_and_missing_element(self):
        code = '<Routes><Route path="*" element={<Navigate to="/" />} /></Routes>'
        assert extract_jsx_routes(code) == [RouteDefinition("/*", "Navigate", False, None)]
        assert extract_jsx_routes('<Route path="/x" />') == []


class TestTableRoutes:
    CODE = textwrap.dedent("""\
        const router = createBrowserRouter([
          {
            path: '/',
            element: <Layout />,
            children: [
              { index: true, element: <Home /> },
              { path: 'about', element: <About /> },
            ],
          },
          { path: '/admin', element: <RequireAuth><Admin /></RequireAuth> },
          { path: '/users/:id', Component: UserDetail },
        ]);
    """)

    def test_route_objects(self):
        assert extract_table_routes(self.CODE) == [
            RouteDefinition("/", "Layout", False, None),
            RouteDefinition("/", "Home", False, "Layout"),
            RouteDefinition("/about", "About", False, "Layout"),
            RouteDefinition("/admin", "Admin", True, None),
            RouteDefinition("/users/:id", "UserDetail", False, None),
        ]

    def test_extract_routes_includes_tables(self):
        assert len(extract_routes(self.CODE)) == 5

    def test_plain_objects_ignored(self):
        assert extract_routes("const config = { path: '/tmp', retries: 3 };\n") == []


class TestRouteHelpers:
    @pytest.mark.parametrize("parent, child, expected", [
        ("/", "about", "/about"),
        (None, "users", "/users"),
        ("/admin/", "/abs", "/abs"),
        ("/admin", "users/:id/", "/admin/users/:id"),
        ("/", "", "/"),
    ])
    def test_join_route_path(self, parent, child, expected):
        assert join_route_path(parent, child) == expected

    def test_element_component(self):
        assert element_component("<Dashboard />") == ("Dashboard", False)
        assert element_component("<ProtectedRoute><Dashboard /></ProtectedRoute>") == ("Dashboard", True)
        assert element_component("<React.Suspense><Page /></React.Suspense>") == ("Page", False)
        assert element_component("Dashboard") == ("Dashboard", False)
        assert element_component("<ProtectedRoute />") == (None, True)
        assert element_component("null") == (None, False)


# ── Endpoints & state libraries ─────────────────────────────────────────


class TestApiEndpoints:
    def test_call_styles(self):
        code = textwrap.dedent("""\
            fetch('/api/items');
            axios('/api/raw');
            axios.post<Item>("/api/items", body);
            apiClient.delete(`/api/items/${id}`);
            http.get('/health');
            someObject.get('/nope');
            fetch(url);
        """)
        assert extract_api_endpoints(code) == [
            "/api/items",
            "/api/raw",
            "/api/items/${id}",
            "/health",
        ]

    def test_axios_create_is_not_an_endpoint(self):
        assert extract_api_endpoints("const api = axios.create({ baseURL: '/api' });\n") == []


class TestDetectStateLibrary:
    @pytest.mark.parametrize("source, expected", [
        ("redux", "redux"),
        ("@reduxjs/toolkit", "redux"),
        ("@reduxjs/toolkit/query/react", "redux"),
        ("react-redux", "redux"),
        ("zustand", "zustand"),
        ("zustand/middleware", "zustand"),
        ("redux-saga", None),
        ("react", None),
    ])
    def test_mapping(self, source, expected):
        assert detect_state_library(source) == expected
