"""
ScriptRunner - interactive terminal menu for package.json scripts.

Discovers the scripts declared in a project's manifest, runs them in the
foreground or in the background, and keeps a small per-user history and
favorites list. Monorepos (npm/yarn workspaces, pnpm, lerna) get an extra
workspace selection level.
"""

__version__ = "1.2.0"
