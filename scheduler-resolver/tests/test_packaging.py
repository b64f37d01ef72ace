from __future__ import annotations

import tomllib

from ._resolver_helpers import ROOT, SCRIPTS

PYPROJECT = ROOT.parent / "pyproject.toml"


def test_flat_modules_are_not_installed_into_site_packages():
    data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
    setuptools_cfg = data["tool"]["setuptools"]
    assert setuptools_cfg["py-modules"] == []
    assert setuptools_cfg["packages"] == []
    assert "scripts" not in data["project"]


def test_declared_dependencies_cover_third_party_imports():
    data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
    deps = " ".join(data["project"]["dependencies"])
    sources = "\n".join(p.read_text(encoding="utf-8") for p in SCRIPTS.glob("*.py"))
    assert "import yaml" in sources
    assert "PyYAML" in deps
