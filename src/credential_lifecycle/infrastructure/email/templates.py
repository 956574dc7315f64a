"""Jinja2 environment for the transactional HTML email templates."""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


class EmailTemplateNotFoundError(LookupError):
    """Raised when no template file exists for a template name."""

    def __init__(self, *, template: str) -> None:
        super().__init__(f"email template not found: {template}")
        self.template = template


@lru_cache(maxsize=4)
def build_template_environment(template_dir: Path = TEMPLATE_DIR) -> Environment:
    """Build and cache the autoescaping environment for one template directory."""

    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html"]),
    )


def render_template(
    template: str,
    params: Mapping[str, str],
    *,
    template_dir: Path = TEMPLATE_DIR,
) -> str:
    """Render `<template>.html` with HTML-escaped params."""

    environment = build_template_environment(template_dir)
    try:
        compiled = environment.get_template(f"{template}.html")
    except TemplateNotFound as error:
        raise EmailTemplateNotFoundError(template=template) from error
    return compiled.render(**params)
