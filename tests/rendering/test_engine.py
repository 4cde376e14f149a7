"""Tests for the jinja2-backed template renderer."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from refgen.rendering.engine import DEFAULT_TEMPLATES_DIR, TemplateMissingError, TemplateRenderer


def _tool_context() -> dict:
    return {
        "tool": {
            "command": "storage account create",
            "name": "create",
            "description": "Create a storage account.",
            "operation": "Create",
            "resourceType": "Account",
            "artifactId": "azure-storage-account-create",
            "parameterCount": 1,
            "parameters": [
                {"name": "account-name", "required": True, "description": "Account name.", "type": "string"}
            ],
            "metadata": {
                "destructive": {"value": True, "source": "extractor"},
                "readOnly": {"value": False, "source": "extractor"},
                "secret": {"value": False, "source": "default"},
            },
            "moreInfoLink": "../tools/azure-storage-account-create.md",
        },
        "serviceBrandName": "Azure Storage",
        "serviceIdentifier": "storage",
        "generatedAt": datetime(2025, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
        "version": "1.2.3",
    }


def test_compiled_template_is_cached() -> None:
    renderer = TemplateRenderer()

    assert renderer.get("tool.md.j2") is renderer.get("tool.md.j2")


def test_tool_template_includes_parameter_partial() -> None:
    output = TemplateRenderer().render("tool.md.j2", _tool_context())

    assert "storage account create" in output
    assert "Account name" in output
    assert output.startswith("---\nms.topic: reference\nms.date: 2025-05-06\ncli.version: 1.2.3\n")
    assert "generated: 2025-05-06 07:08:09 UTC\n---\n\n# Azure Storage: Create (account)" in output


def test_rendering_is_deterministic() -> None:
    renderer = TemplateRenderer()
    context = _tool_context()

    assert renderer.render("tool.md.j2", context) == renderer.render("tool.md.j2", context)


def test_custom_directory_shadows_bundled_templates(tmp_path: Path) -> None:
    partials = tmp_path / "partials"
    partials.mkdir()
    (partials / "parameters.md.j2").write_text(
        "PARAMS:{% for p in parameters %}{{ p.name | natural_language }}{% endfor %}\n",
        encoding="utf-8",
    )

    renderer = TemplateRenderer(tmp_path)
    output = renderer.render("tool.md.j2", _tool_context())

    assert renderer.search_path == [str(tmp_path), str(DEFAULT_TEMPLATES_DIR)]
    assert "PARAMS:Account name" in output


def test_render_string_exposes_helpers() -> None:
    renderer = TemplateRenderer()
    source = "{{ name | kebab_case }} {{ bool_icon(flag) }} {{ 'A' | eq_ignore_case('a') }}"

    assert renderer.render_string(source, {"name": "Key Vault", "flag": True}) == "key-vault ✅ True"


def test_missing_template_raises() -> None:
    renderer = TemplateRenderer()

    assert renderer.has_template("tool.md.j2")
    assert not renderer.has_template("absent.md.j2")
    with pytest.raises(TemplateMissingError, match="absent.md.j2"):
        renderer.render("absent.md.j2", {})
