"""
File transport: dry-run posting that writes each thread to disk
"""
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from core.entities import MediaImage
from delivery.base import PostingTransport


class FileTransport(PostingTransport):
    """
    Appends every posted segment to a JSONL log and mirrors each thread
    as a markdown file named after its root message id.
    """
    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = self.output_dir / "posts.jsonl"
        self._roots: Dict[str, str] = {}

    def _record(self, message_id: str, text: str, in_reply_to: Optional[str], media: Optional[MediaImage]) -> None:
        record = {
            "id": message_id,
            "text": text,
            "in_reply_to": in_reply_to,
            "media": media.__dict__ if media else None,
            "posted_at": datetime.now(timezone.utc).isoformat(),
        }
        with self.log_path.open("a", encoding="utf-8") as file:
            file.write(json.dumps(record, ensure_ascii=False) + "\n")

        root = self._roots.get(in_reply_to, message_id) if in_reply_to else message_id
        self._roots[message_id] = root

        md_path = self.output_dir / f"thread_{root}.md"
        md_lines: List[str] = []
        if in_reply_to is None:
            md_lines.append(f"# Thread {root}")
            md_lines.append("")
        md_lines.append(text)
        if media:
            md_lines.append(f"![{media.alt}]({media.url})")
        md_lines.append("\n---\n")

        with md_path.open("a", encoding="utf-8") as file:
            file.write("\n".join(md_lines))

    async def post(self, text: str, media: Optional[MediaImage] = None) -> str:
        message_id = f"file-{uuid.uuid4().hex[:12]}"
        self._record(message_id, text, None, media)
        return message_id

    async def reply(self, text: str, in_reply_to: str) -> str:
        message_id = f"file-{uuid.uuid4().hex[:12]}"
        self._record(message_id, text, in_reply_to, None)
        return message_id
