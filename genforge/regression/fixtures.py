"""
Artifact providers for scenario runs.

Every case gets a fresh artifact so cases never share a directory and can
run in parallel. FixtureArtifactProvider synthesizes a small Next.js style
application in memory from the case's domain and feature list; a provider
backed by a real generation backend plugs in through the same protocol.

Copyright (c) 2025 GenForge
"""

import json
import re
from typing import Dict, List, Protocol

from genforge.validation import Artifact, InMemoryArtifact

from .suites import ScenarioCase

DOMAIN_COMPONENTS: Dict[str, List[str]] = {
    "ecommerce": ["ProductCard"],
    "blog": ["PostList"],
    "portfolio": ["ProjectGallery"],
}

SAAS_CONTEXTS = ["DashboardContext", "AnalyticsContext"]
SAAS_BUSINESS_COMPONENTS = ["MetricsCard", "AnalyticsChart"]

GLOBALS_CSS = "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n"

TAILWIND_CONFIG = """/** @type {import('tailwindcss').Config} */
module.exports = {
  content: ["./app/**/*.{ts,tsx}", "./components/**/*.{ts,tsx}"],
  theme: { extend: {} },
  plugins: [],
};
"""


class ArtifactProvider(Protocol):
    """Produces the artifact a scenario case is validated against."""

    async def provide(self, case: ScenarioCase) -> Artifact: ...


def component_name(feature: str) -> str:
    """'shopping_cart' -> 'ShoppingCart'; CamelCase names are kept."""
    parts = [p for p in re.split(r"[_\-\s]+", feature) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _component_source(name: str) -> str:
    return (
        f"interface {name}Props {{\n"
        f"  title?: string;\n"
        f"}}\n"
        f"\n"
        f"export default function {name}({{ title = \"{name}\" }}: {name}Props) {{\n"
        f"  return <section className=\"rounded border p-4\">{{title}}</section>;\n"
        f"}}\n"
    )


def _context_source(name: str) -> str:
    base = name[: -len("Context")] if name.endswith("Context") else name
    return (
        f"\"use client\";\n"
        f"\n"
        f"import {{ createContext, useContext, useState }} from \"react\";\n"
        f"\n"
        f"interface {base}State {{\n"
        f"  range: string;\n"
        f"  setRange: (range: string) => void;\n"
        f"}}\n"
        f"\n"
        f"const {name} = createContext<{base}State | null>(null);\n"
        f"\n"
        f"export function {base}Provider({{ children }}: {{ children: React.ReactNode }}) {{\n"
        f"  const [range, setRange] = useState(\"7d\");\n"
        f"  return <{name}.Provider value={{{{ range, setRange }}}}>{{children}}</{name}.Provider>;\n"
        f"}}\n"
        f"\n"
        f"export function use{base}() {{\n"
        f"  const value = useContext({name});\n"
        f"  if (value === null) {{\n"
        f"    throw new Error(\"use{base} must be used inside {base}Provider\");\n"
        f"  }}\n"
        f"  return value;\n"
        f"}}\n"
    )


def _layout_source(title: str) -> str:
    return (
        "import \"./globals.css\";\n"
        "\n"
        f"export const metadata = {{ title: {json.dumps(title)} }};\n"
        "\n"
        "export default function RootLayout({ children }: { children: React.ReactNode }) {\n"
        "  return (\n"
        "    <html lang=\"en\">\n"
        "      <body>{children}</body>\n"
        "    </html>\n"
        "  );\n"
        "}\n"
    )


def _page_source(imports: Dict[str, str]) -> str:
    lines = [f"import {name} from \"@/{path}\";" for name, path in imports.items()]
    lines.append("")
    lines.append(f"const sections = [{', '.join(imports)}];")
    lines.append("")
    lines.append("export default function HomePage() {")
    lines.append("  return (")
    lines.append("    <main className=\"min-h-screen p-8\">")
    lines.append("      {sections.map((Section, index) => <Section key={index} />)}")
    lines.append("    </main>")
    lines.append("  );")
    lines.append("}")
    return "\n".join(lines) + "\n"


class FixtureArtifactProvider:
    """
    Synthesizes a well-formed in-memory application per case.

    SaaS cases carry the dashboard contexts and business components; other
    domains carry a component that identifies the domain. Every expected
    feature becomes a component of its own.
    """

    def __init__(self, name_prefix: str = "scenario"):
        self.name_prefix = name_prefix

    async def provide(self, case: ScenarioCase) -> Artifact:
        return self.build(case)

    def build(self, case: ScenarioCase) -> InMemoryArtifact:
        name = f"{self.name_prefix}-{slugify(case.name)}"
        files: Dict[str, str] = {
            "package.json": json.dumps(
                {
                    "name": name,
                    "private": True,
                    "scripts": {
                        "dev": "next dev",
                        "build": "next build",
                        "start": "next start",
                        "lint": "next lint",
                    },
                    "dependencies": {"next": "14.2.0", "react": "18.3.1", "react-dom": "18.3.1"},
                    "devDependencies": {"typescript": "5.4.5", "tailwindcss": "3.4.3"},
                },
                indent=2,
            ),
            "tsconfig.json": json.dumps(
                {
                    "compilerOptions": {"strict": True, "jsx": "preserve", "paths": {"@/*": ["./*"]}},
                    "include": ["**/*.ts", "**/*.tsx"],
                },
                indent=2,
            ),
            "tailwind.config.js": TAILWIND_CONFIG,
            "app/globals.css": GLOBALS_CSS,
            "app/layout.tsx": _layout_source(case.name),
            "genforge.json": json.dumps(
                {"domain": case.expected_domain, "features": list(case.expected_features), "generator": "fixture"},
                indent=2,
            ),
        }

        imports: Dict[str, str] = {}
        if case.expected_domain == "saas":
            for context in SAAS_CONTEXTS:
                files[f"contexts/{context}.tsx"] = _context_source(context)
            for component in SAAS_BUSINESS_COMPONENTS:
                path = f"components/business/{component}"
                files[f"{path}.tsx"] = _component_source(component)
                imports[component] = path
        for component in DOMAIN_COMPONENTS.get(case.expected_domain, []):
            imports.setdefault(component, f"components/{component}")

        for feature in case.expected_features:
            component = component_name(feature)
            if component and component not in imports:
                imports[component] = f"components/{component}"

        for component, path in imports.items():
            files.setdefault(f"{path}.tsx", _component_source(component))
        files["app/page.tsx"] = _page_source(imports)

        return InMemoryArtifact(name, files)
