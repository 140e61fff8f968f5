"""Shared fixtures for graft tests."""
import json
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def graft_env(tmp_path, monkeypatch):
    """Isolate config, cwd and the templates directory for every test.

    Tests never read the real ~/.config/graft or write templates outside
    tmp_path. Returns the templates directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    templates = tmp_path / "templates"

    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(work)
    monkeypatch.setenv("GRAFT_TEMPLATES_DIR", str(templates))
    for var in ("GRAFT_EXTRACTOR", "GRAFT_WORKERS", "GRAFT_PLAIN", "GRAFT_DEBUG"):
        monkeypatch.delenv(var, raising=False)

    from graft import ui
    from graft.core.config_service import reset_config_service
    from graft.logging_config import reset_logging

    reset_config_service()
    reset_logging()
    yield templates
    reset_config_service()
    reset_logging()
    ui.set_plain_mode(False)
    ui.set_json_mode(False)


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under ``root``."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


APP_TSX = """\
import { BrowserRouter, Routes, Route } from 'react-router-dom';
import Layout from './components/Layout';
import Home from './pages/Home';
import Dashboard from './pages/Dashboard';
import Settings from './pages/Settings';
import Login from './pages/Login';
import ProtectedRoute from './components/ProtectedRoute';

export default function App() {
  return (
    <BrowserRouter>
      <Routes>
        <Route path="/login" element={<Login />} />
        <Route path="/" element={<Layout />}>
          <Route index element={<Home />} />
          <Route element={<ProtectedRoute />}>
            <Route path="dashboard" element={<Dashboard />} />
            <Route path="settings" element={<Settings />} />
          </Route>
        </Route>
      </Routes>
    </BrowserRouter>
  );
}
"""

DASHBOARD_TSX = """\
import { useEffect, useState } from 'react';
import { useSelector } from 'react-redux';
import axios from 'axios';

interface DashboardProps {
  title: string;
  refreshInterval?: number;
}

export default function Dashboard({ title }: DashboardProps) {
  const [stats, setStats] = useState<Stats | null>(null);
  const user = useSelector((state: RootState) => state.auth.user);

  useEffect(() => {
    axios.get('/api/stats').then((res) => setStats(res.data));
  }, []);

  return <h1 className="text-xl">{title}</h1>;
}
"""

SETTINGS_TSX = """\
import { useEffect } from 'react';
import { useParams } from 'react-router-dom';

const Settings = () => {
  const { id } = useParams();
  useEffect(() => {
    fetch(`/api/users/${id}/settings`);
  }, [id]);
  return <div>Settings</div>;
};

export default Settings;
"""

LOGIN_TSX = """\
import { memo } from 'react';

function LoginPage() {
  return <form>Login</form>;
}

export default memo(LoginPage);
"""

AUTH_CONTEXT_TSX = """\
import { createContext, useContext, useState } from 'react';

export const AuthContext = createContext<AuthState | null>(null);

export function AuthProvider({ children }) {
  const [user, setUser] = useState(null);
  return <AuthContext.Provider value={{ user, setUser }}>{children}</AuthContext.Provider>;
}

export function useAuth() {
  return useContext(AuthContext);
}
"""

SAMPLE_APP_FILES = {
    "package.json": json.dumps({
        "name": "sample-app",
        "dependencies": {
            "react": "^18.3.1",
            "react-dom": "^18.2.0",
            "react-router-dom": "^6.22.0",
            "react-redux": "^9.0.4",
            "@reduxjs/toolkit": "^1.9.7",
            "axios": "^1.6.0",
            "recharts": "^2.10.0",
            "clsx": "^2.0.0",
        },
        "devDependencies": {
            "typescript": "^5.3.3",
            "tailwindcss": "^3.4.0",
        },
    }, indent=2),
    "tailwind.config.js": "module.exports = { content: ['./src/**/*.tsx'] };\n",
    "tsconfig.json": "{}\n",
    "src/main.tsx": (
        "import ReactDOM from 'react-dom/client';\n"
        "import App from './App';\n"
        "ReactDOM.createRoot(document.getElementById('root')!).render(<App />);\n"
    ),
    "src/App.tsx": APP_TSX,
    "src/pages/Home.tsx": "export default function Home() {\n  return <div className=\"p-4\">Home</div>;\n}\n",
    "src/pages/Dashboard.tsx": DASHBOARD_TSX,
    "src/pages/Settings.tsx": SETTINGS_TSX,
    "src/pages/Login.tsx": LOGIN_TSX,
    "src/components/Layout.tsx": (
        "import { Outlet } from 'react-router-dom';\n\n"
        "export default function Layout() {\n  return <main><Outlet /></main>;\n}\n"
    ),
    "src/components/ProtectedRoute.tsx": (
        "import { Navigate, Outlet } from 'react-router-dom';\n"
        "import { useAuth } from '../context/AuthContext';\n\n"
        "export default function ProtectedRoute() {\n"
        "  const auth = useAuth();\n"
        "  return auth?.user ? <Outlet /> : <Navigate to=\"/login\" />;\n"
        "}\n"
    ),
    "src/context/AuthContext.tsx": AUTH_CONTEXT_TSX,
    "src/store/index.ts": (
        "import { configureStore } from '@reduxjs/toolkit';\n\n"
        "export const store = configureStore({ reducer: {} });\n"
    ),
    "src/api/client.ts": (
        "import axios from 'axios';\n\n"
        "export const api = axios.create({ baseURL: '/api' });\n"
        "export const getUsers = () => api.get('/users');\n"
        "export const createUser = (user) => api.post<User>('/users', user);\n"
    ),
    "src/types.d.ts": "export interface User { id: string }\n",
    "src/dist/bundle.js": "export default function Bundled() {}\n",
    "src/node_modules/left-pad/index.js": "module.exports = function leftPad() {};\n",
}


@pytest.fixture
def react_app(tmp_path):
    """A small React + TypeScript app with routes, redux, context and Tailwind."""
    return write_files(tmp_path / "sample-app", SAMPLE_APP_FILES)


@pytest.fixture
def framework_deps():
    return {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "react-redux": "^9.0.4",
        "react-router-dom": "^6.21.1",
        "@reduxjs/toolkit": "^2.0.1",
    }


@pytest.fixture
def registry(graft_env):
    from graft.templates.registry import TemplateRegistry
    return TemplateRegistry(graft_env)


@pytest.fixture
def sample_config():
    from graft.templates.models import (
        ComponentSets,
        Customization,
        RouteConfig,
        TemplateConfig,
        TemplateSource,
    )
    return TemplateConfig(
        name="crm-starter",
        description="CRM starter kit",
        version="1.2.0",
        source=TemplateSource(repo="https://example.com/crm.git", branch="main"),
        components=ComponentSets(required=["Dashboard"], optional=["Home", "Layout"]),
        routes=[
            RouteConfig(path="/", component="Home", protected=False, layout="Layout"),
            RouteConfig(path="/dashboard", component="Dashboard", protected=True),
        ],
        dependencies={"zod": "^3.22.0", "react": "^18.2.0", "axios": "^1.6.0"},
        modules=["billing"],
        customization=Customization(theme=True, layout=True, auth=True),
    )
