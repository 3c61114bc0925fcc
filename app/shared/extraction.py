"""Best-effort extraction of tables, code blocks and lists from a reply.

Used only to populate the copy menu; matches are loose and not guaranteed
to be complete.
"""

import re

TABLE_PATTERN = re.compile(r"\|[^|\n]*\|[^|\n]*\|[\s\S]*?(?=\n\n|\n\Z|\Z)")
CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")
NUMBERED_LIST_PATTERN = re.compile(
    r"(?:^|\n)((?:\d+\.\s+[^\n]+(?:\n(?:\s{2,}[^\n]+|\d+\.\s+[^\n]+))*)+)", re.M
)
BULLET_LIST_PATTERN = re.compile(
    r"(?:^|\n)((?:[*-]\s+[^\n]+(?:\n(?:\s{2,}[^\n]+|[*-]\s+[^\n]+))*)+)", re.M
)


def extract_tables(content: str) -> list[str]:
    return [match.group(0).strip() for match in TABLE_PATTERN.finditer(content)]


def extract_code_blocks(content: str) -> list[str]:
    return [match.group(0).strip() for match in CODE_BLOCK_PATTERN.finditer(content)]


def extract_lists(content: str) -> list[str]:
    """Numbered lists first, then bullet lists."""
    lists = [match.group(1).strip() for match in NUMBERED_LIST_PATTERN.finditer(content)]
    lists.extend(match.group(1).strip() for match in BULLET_LIST_PATTERN.finditer(content))
    return lists


def build_copy_options(content: str) -> list[dict[str, str]]:
    """Full reply followed by one labelled option per extracted fragment."""
    options = [{"label": "Full Response", "content": content, "type": "full"}]

    for index, table in enumerate(extract_tables(content), start=1):
        preview = table.split("\n")[0][:50] + "..."
        options.append({"label": f"Table {index}: {preview}", "content": table, "type": "table"})

    for index, code in enumerate(extract_code_blocks(content), start=1):
        first_line = re.sub(r"```\w*", "", code.split("\n")[0], count=1)[:30]
        options.append(
            {"label": f"Code Block {index}: {first_line}...", "content": code, "type": "code"}
        )

    for index, items in enumerate(extract_lists(content), start=1):
        first_item = items.split("\n")[0][:40] + "..."
        options.append({"label": f"List {index}: {first_item}", "content": items, "type": "list"})

    return options
