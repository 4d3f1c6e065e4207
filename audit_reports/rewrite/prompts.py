import re

from audit_reports.rewrite.schemas import FindingContext


def _placeholder(name: str) -> re.Pattern:
    return re.compile(r"\{\{" + name + r"\}\}|\{" + name + r"\}")


_PLACEHOLDERS = {
    "sectionTitle": _placeholder("sectionTitle"),
    "itemTitle": _placeholder("itemTitle"),
    "itemDescription": _placeholder("itemDescription"),
    "finding": _placeholder("finding"),
}


def fill_prompt(template: str, context: FindingContext, finding: str) -> str:
    """Substitute both {name} and {{name}} forms; missing values become empty strings."""
    values = {
        "sectionTitle": context.section_title or "",
        "itemTitle": context.item_title or "",
        "itemDescription": context.item_description or "",
        "finding": finding or "",
    }
    out = template
    for name, pattern in _PLACEHOLDERS.items():
        # Callable replacement so backslashes in user text are not treated as escapes
        out = pattern.sub(lambda _m, v=values[name]: v, out)
    return out
