"""Shared pytest fixtures for lockscope tests."""

from __future__ import annotations

import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def flat_lockfile() -> dict:
    """A small lockfile v3 document: two explicit packages, one nested, one linked."""
    return {
        "name": "app",
        "lockfileVersion": 3,
        "packages": {
            "": {
                "name": "app",
                "version": "0.1.0",
                "dependencies": {"left-pad": "^1.3.0"},
                "devDependencies": {"@scope/tool": "^2.0.0"},
            },
            "node_modules/left-pad": {
                "version": "1.3.0",
                "resolved": "https://registry.npmjs.org/left-pad/-/left-pad-1.3.0.tgz",
                "integrity": "sha512-aaa",
                "dependencies": {"is-odd": "^3.0.0"},
            },
            "node_modules/@scope/tool": {
                "version": "2.1.0",
                "resolved": "https://registry.npmjs.org/@scope/tool/-/tool-2.1.0.tgz",
                "dev": True,
            },
            "node_modules/left-pad/node_modules/is-odd": {
                "version": "3.0.1",
                "resolved": "https://registry.npmjs.org/is-odd/-/is-odd-3.0.1.tgz",
                "optional": True,
            },
            "packages/local-lib": {
                "name": "local-lib",
                "version": "0.0.1",
            },
        },
    }
