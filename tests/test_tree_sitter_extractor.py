"""Tests for the tree-sitter extractor (skipped when tree-sitter is absent)."""

import textwrap
from pathlib import Path

import pytest

from graft.analyzers import tree_sitter_extractor
from graft.analyzers.models import ImportInfo
from graft.errors import ConfigError, ExtractionError

pytest.importorskip("tree_sitter_languages")


@pytest.fixture
def extractor():
    ts = tree_sitter_extractor.TreeSitterExtractor()
    try:
        ts._parser_for(Path("check.tsx"))
    except ConfigError as e:
        pytest.skip(str(e))
    return ts


class TestTreeSitterExtractor:
    def test_imports_exports_and_hooks(self, extractor):
        code = textwrap.dedent("""\
            import React, { useState } from 'react';
            import { useSelector } from 'react-redux';
            const path = require('path');

            export const ThemeContext = React.createContext('light');

            function Profile() {
              const [open, setOpen] = useState(false);
              useEffect(() => {}, []);
              return <div />;
            }

            export { Profile as ProfileCard };
            export default memo(Profile);
        """)
        facts = extractor.extract(Path("Profile.tsx"), code)

        assert facts.imports == [
            ImportInfo("react", ["React", "useState"], True),
            ImportInfo("react-redux", ["useSelector"], False),
            ImportInfo("path", ["path"], True),
        ]
        assert facts.default_export == "Profile"
        assert facts.has_default_export is True
        assert facts.named_exports == ["ThemeContext", "ProfileCard"]
        assert facts.has_state is True
        assert facts.has_effects is True
        assert facts.defines_context is True

    def test_routes_and_endpoints_reuse_text_helpers(self, extractor):
        code = textwrap.dedent("""\
            export default function App() {
              fetch('/api/health');
              return (
                <Routes>
                  <Route path="/reports" element={<Reports />} />
                </Routes>
              );
            }
        """)
        facts = extractor.extract(Path("App.jsx"), code)
        assert [(r.path, r.component) for r in facts.routes] == [("/reports", "Reports")]
        assert facts.api_endpoints == ["/api/health"]
        assert facts.default_export == "App"

    def test_syntax_error_raises(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract(Path("Broken.tsx"), "export default function ( {\n")

    def test_unknown_extension_raises(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract(Path("styles.css"), ".a { color: red; }\n")


class TestAvailability:
    def test_missing_dependency_is_config_error(self, monkeypatch):
        monkeypatch.setattr(tree_sitter_extractor, "_HAS_TREE_SITTER", False)
        with pytest.raises(ConfigError, match="tree-sitter"):
            tree_sitter_extractor.TreeSitterExtractor()
