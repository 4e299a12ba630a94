"""Enumerate the documents of a page in a stable order."""

from __future__ import annotations

from typing import Any

from ..models import DocumentRef


class FrameScanner:
    """List the main document followed by every embedded frame."""

    def documents_of(self, page: Any) -> list[tuple[DocumentRef, Any]]:
        """Return ``(ref, frame)`` pairs, main document first.

        Frames follow in the order ``page.frames`` reports them. The order is
        stable for one call and may change across navigations.
        """

        main = page.main_frame
        documents = [(DocumentRef(index=0, url=main.url or ""), main)]
        for frame in page.frames:
            if frame is main:
                continue
            ref = DocumentRef(index=len(documents), url=frame.url or "", name=frame.name or "")
            documents.append((ref, frame))
        return documents
