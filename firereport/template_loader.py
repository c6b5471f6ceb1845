import os
import yaml
from typing import Any, Dict

DEFAULT_TEMPLATE_PATH = os.path.join(os.path.dirname(__file__), "templates", "report_template.yml")

REQUIRED_KEYS = ("persona", "instructions", "title_heading", "sections", "closing")


def _validate(template: Dict[str, Any], path: str) -> None:
    missing = [k for k in REQUIRED_KEYS if k not in template]
    if missing:
        raise ValueError(f"Report template {path} is missing keys: {', '.join(missing)}")
    for i, section in enumerate(template["sections"]):
        if not section.get("heading"):
            raise ValueError(f"Report template {path}: section {i} has no heading")
        section.setdefault("points", [])


def load_report_template(path: str = DEFAULT_TEMPLATE_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        template = yaml.safe_load(f) or {}
    if not isinstance(template, dict):
        raise ValueError(f"Report template {path} must be a mapping")

    _validate(template, path)
    return template
