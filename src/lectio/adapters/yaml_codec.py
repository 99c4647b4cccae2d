import io
import re
from typing import Any

import yaml

_FM = re.compile(r"^\s*---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


class YamlFrontmatter:
    """Optional `---` delimited YAML header on an import source file."""

    def decode(self, text: str) -> tuple[dict[str, Any], str]:
        m = _FM.match(text)
        if not m:
            return {}, text
        meta = yaml.safe_load(io.StringIO(m.group(1))) or {}
        if not isinstance(meta, dict):
            raise ValueError("Front matter must be a YAML mapping")
        return meta, text[m.end() :]

    def encode(self, meta: dict[str, Any]) -> str:
        if not meta:
            return ""
        return f"---\n{dump_yaml(meta)}---\n"


def dump_yaml(data: Any) -> str:
    buf = io.StringIO()
    yaml.safe_dump(data, buf, sort_keys=False, allow_unicode=True)
    return buf.getvalue()


def load_yaml(text: str) -> Any:
    return yaml.safe_load(io.StringIO(text))
