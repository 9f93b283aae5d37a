"""
Content Extractor

Renders a Notion page's block tree to plain text.

The tree is walked with an explicit stack of frames rather than recursion.
Children are fetched only while the parent's depth is below ``max_depth``,
which also bounds walks through self-referencing nested pages. A failed
children fetch becomes an inline placeholder line; siblings and ancestors
are still rendered.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..common.accounting import ApiCallCounter, RateLimiter
from ..common.notion_client import NotionClient, StoreError, StoreAuthError, StoreNotFoundError
from .searcher import PageSummary, extract_title, rich_text_to_plain

logger = logging.getLogger("seeker.search.extractor")

INDENT = "  "
BANNER_WIDTH = 40

# Layout-only containers: nothing to render, children still walked
CONTAINER_TYPES = {"column_list", "column", "synced_block", "template"}


@dataclass
class PageContent:
    """A PageSummary with its rendered text"""
    page: PageSummary
    text: str
    length: int = 0

    def __post_init__(self):
        self.length = len(self.text)

    @property
    def id(self) -> str:
        return self.page.id

    @property
    def title(self) -> str:
        return self.page.title

    @property
    def url(self) -> str:
        return self.page.url

    def to_dict(self) -> Dict[str, Any]:
        data = self.page.to_dict()
        data["content"] = self.text
        data["length"] = self.length
        return data


@dataclass
class _Frame:
    blocks: List[Dict[str, Any]]
    depth: int
    position: int = 0


# =============================================================================
# Block renderers
# =============================================================================

def _text(block: Dict[str, Any]) -> str:
    data = block.get(block.get("type", "")) or {}
    return rich_text_to_plain(data.get("rich_text", []))


def _file_url(data: Dict[str, Any]) -> str:
    return (data.get("external") or {}).get("url") or (data.get("file") or {}).get("url") or ""


def _prefixed(prefix: str) -> Callable[[Dict[str, Any]], Optional[str]]:
    def render(block: Dict[str, Any]) -> Optional[str]:
        text = _text(block)
        return f"{prefix}{text}" if text else None
    return render


def _render_paragraph(block):
    return _text(block) or None


def _render_to_do(block):
    text = _text(block)
    mark = "✓" if (block.get("to_do") or {}).get("checked") else "○"
    return f"{mark} {text}"


def _render_callout(block):
    icon = ((block.get("callout") or {}).get("icon") or {}).get("emoji") or "💡"
    return f"{icon} {_text(block)}"


def _render_code(block):
    language = (block.get("code") or {}).get("language", "")
    return f"```{language}\n{_text(block)}\n```"


def _render_table(block):
    return "[表格內容]"


def _render_table_row(block):
    cells = (block.get("table_row") or {}).get("cells", [])
    return " | ".join(rich_text_to_plain(cell) for cell in cells)


def _render_image(block):
    return f"![圖片]({_file_url(block.get('image') or {})})"


def _render_video(block):
    return f"[影片：{_file_url(block.get('video') or {})}]"


def _render_audio(block):
    return f"[音訊：{_file_url(block.get('audio') or {})}]"


def _render_file(block):
    data = block.get("file") or {}
    name = data.get("name") or "檔案"
    return f"[檔案：{name}]({_file_url(data)})"


def _render_pdf(block):
    return f"[PDF：{_file_url(block.get('pdf') or {})}]"


def _render_bookmark(block):
    url = (block.get("bookmark") or {}).get("url", "")
    return f"[書籤：{url}]({url})"


def _render_link_preview(block):
    return f"[連結預覽：{(block.get('link_preview') or {}).get('url', '')}]"


def _render_embed(block):
    return f"[嵌入內容：{(block.get('embed') or {}).get('url', '')}]"


def _render_equation(block):
    return f"$$ {(block.get('equation') or {}).get('expression', '')} $$"


def _render_child_page(block):
    title = (block.get("child_page") or {}).get("title") or "未命名頁面"
    return f"📄 【子頁面：{title}】"


def _render_child_database(block):
    title = (block.get("child_database") or {}).get("title") or "未命名資料庫"
    return f"🗃️ 【子資料庫：{title}】"


BLOCK_RENDERERS: Dict[str, Callable[[Dict[str, Any]], Optional[str]]] = {
    "paragraph": _render_paragraph,
    "heading_1": _prefixed("# "),
    "heading_2": _prefixed("## "),
    "heading_3": _prefixed("### "),
    "bulleted_list_item": _prefixed("• "),
    "numbered_list_item": _prefixed("1. "),
    "to_do": _render_to_do,
    "toggle": _prefixed("▶ "),
    "quote": _prefixed("> "),
    "callout": _render_callout,
    "code": _render_code,
    "divider": lambda block: "---",
    "table": _render_table,
    "table_row": _render_table_row,
    "image": _render_image,
    "video": _render_video,
    "audio": _render_audio,
    "file": _render_file,
    "pdf": _render_pdf,
    "bookmark": _render_bookmark,
    "link_preview": _render_link_preview,
    "embed": _render_embed,
    "equation": _render_equation,
    "child_page": _render_child_page,
    "child_database": _render_child_database,
}


def render_block(block: Dict[str, Any], depth: int = 0) -> Optional[str]:
    """Render one block, indented for ``depth``. None means nothing to show."""
    block_type = block.get("type", "")
    if block_type in CONTAINER_TYPES:
        return None

    renderer = BLOCK_RENDERERS.get(block_type)
    if renderer is None:
        text = f"[不支援的區塊：{block_type or 'unknown'}]"
    else:
        text = renderer(block)
    if not text:
        return None

    indent = INDENT * depth
    return "\n".join(indent + line for line in text.split("\n"))


def normalize_text(title: str, body: str) -> str:
    """Blank lines around rules and code fences, collapsed blank runs, title banner."""
    lines: List[str] = []
    in_code = False
    pad_next = False

    for raw_line in body.replace("\r\n", "\n").split("\n"):
        line = raw_line.rstrip()
        stripped = line.strip()

        if pad_next and stripped:
            lines.append("")
        pad_next = False

        if stripped.startswith("```"):
            if not in_code:
                lines.append("")
            else:
                pad_next = True
            in_code = not in_code
        elif stripped == "---" and not in_code:
            lines.append("")
            pad_next = True

        lines.append(line)

    text = "\n".join(lines).strip("\n")
    text = re.sub(r"\n{3,}", "\n\n", text)

    rule = "=" * BANNER_WIDTH
    return f"{rule}\n📄 {title}\n{rule}\n\n{text}".rstrip() + "\n"


# =============================================================================
# Extractor
# =============================================================================

class ContentExtractor:
    """
    Fetches and renders page content under depth and rate limits.

    Every Notion call waits on the shared RateLimiter first.
    """

    def __init__(
        self,
        store: NotionClient,
        rate_limiter: RateLimiter,
        max_depth: int = 3,
        max_blocks_per_page: int = 100,
        database_page_size: int = 10,
    ):
        self._store = store
        self._limiter = rate_limiter
        self.max_depth = max_depth
        self.max_blocks_per_page = max_blocks_per_page
        self.database_page_size = database_page_size

    async def _call(self, counter: Optional[ApiCallCounter], fn, *args, **kwargs):
        await self._limiter.wait()
        try:
            return await fn(*args, **kwargs)
        finally:
            if counter is not None:
                counter.increment_store()

    async def extract(
        self,
        page: PageSummary,
        counter: Optional[ApiCallCounter] = None,
    ) -> Optional[PageContent]:
        """
        Fetch one page and render its block tree.

        Returns:
            PageContent, or None when the page itself cannot be read
        """
        try:
            meta = await self._call(counter, self._store.get_page, page.id)
            root_blocks = await self._call(
                counter,
                self._store.get_block_children,
                page.id,
                page_size=self.max_blocks_per_page,
            )
        except (StoreAuthError, StoreNotFoundError) as e:
            logger.warning("Page %s (%s) not accessible: %s", page.id, page.title, e)
            return None
        except (StoreError, httpx.TransportError) as e:
            logger.error("Failed to read page %s (%s): %s", page.id, page.title, e)
            return None

        title = extract_title(meta)
        body = await self._walk(root_blocks, counter)

        summary = PageSummary(
            id=page.id,
            title=title,
            url=meta.get("url") or page.url,
            last_edited_at=meta.get("last_edited_time") or page.last_edited_at,
            created_at=meta.get("created_time") or page.created_at,
            matched_keyword=page.matched_keyword,
        )
        return PageContent(page=summary, text=normalize_text(title, body))

    async def extract_many(
        self,
        pages: List[PageSummary],
        counter: Optional[ApiCallCounter] = None,
    ) -> List[PageContent]:
        """Extract pages one after another, skipping unreadable ones."""
        contents = []
        for page in pages:
            content = await self.extract(page, counter)
            if content is not None:
                contents.append(content)
        logger.debug("Read %d of %d selected pages", len(contents), len(pages))
        return contents

    async def _walk(
        self,
        root_blocks: List[Dict[str, Any]],
        counter: Optional[ApiCallCounter],
    ) -> str:
        lines: List[str] = []
        stack = [_Frame(blocks=root_blocks, depth=0)]

        while stack:
            frame = stack[-1]
            if frame.position >= len(frame.blocks):
                stack.pop()
                continue

            block = frame.blocks[frame.position]
            frame.position += 1
            depth = frame.depth

            rendered = render_block(block, depth)
            if rendered:
                lines.append(rendered)

            if depth >= self.max_depth:
                continue

            children = await self._children_of(block, depth, counter, lines)
            if children:
                stack.append(_Frame(blocks=children, depth=depth + 1))

        return "\n".join(lines)

    async def _children_of(
        self,
        block: Dict[str, Any],
        depth: int,
        counter: Optional[ApiCallCounter],
        lines: List[str],
    ) -> List[Dict[str, Any]]:
        """Fetch nested content for ``block``; failures become a placeholder line."""
        block_id = block.get("id", "")
        block_type = block.get("type", "")

        try:
            if block_type == "child_database":
                rows = await self._call(
                    counter,
                    self._store.query_database,
                    block_id,
                    page_size=self.database_page_size,
                )
                return [_row_as_child_page(row) for row in rows]

            if block.get("has_children"):
                return await self._call(counter, self._store.get_block_children, block_id)
        except (StoreError, httpx.TransportError) as e:
            logger.error("Failed to read children of block %s: %s", block_id, e)
            lines.append(f"{INDENT * (depth + 1)}[無法讀取子區塊：{e}]")

        return []


def _row_as_child_page(row: Dict[str, Any]) -> Dict[str, Any]:
    """Present a database row as a nested page block."""
    return {
        "id": row.get("id", ""),
        "type": "child_page",
        "child_page": {"title": extract_title(row)},
        "has_children": True,
    }
