"""引用来源抽取。

从后端原始响应中读取 candidates[0].groundingMetadata.groundingChunks，
逐条校验后转换为 WebSource / MapSource。任何层级字段缺失都视为“没有来源”。
"""

from typing import Any, List, Mapping, Optional, Tuple

from salon_assistant.domain.models import GroundingChunk, MapSource, WebSource


def extract(raw: Any) -> List[GroundingChunk]:
    """返回按原始顺序排列的引用来源列表；无来源时返回空列表。"""

    if not isinstance(raw, Mapping):
        return []
    candidates = raw.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return []
    first = candidates[0]
    if not isinstance(first, Mapping):
        return []
    metadata = first.get("groundingMetadata")
    if not isinstance(metadata, Mapping):
        return []
    raw_chunks = metadata.get("groundingChunks")
    if not isinstance(raw_chunks, list):
        return []

    chunks: List[GroundingChunk] = []
    for raw_chunk in raw_chunks:
        chunk = _convert_chunk(raw_chunk)
        if chunk is not None:
            chunks.append(chunk)
    return chunks


def _convert_chunk(raw_chunk: Any) -> Optional[GroundingChunk]:
    if not isinstance(raw_chunk, Mapping):
        return None
    web = raw_chunk.get("web")
    if isinstance(web, Mapping):
        uri = web.get("uri")
        if not isinstance(uri, str) or not uri:
            return None
        return WebSource(uri=uri, title=_optional_str(web.get("title")))
    maps = raw_chunk.get("maps")
    if isinstance(maps, Mapping):
        uri = maps.get("uri")
        if not isinstance(uri, str) or not uri:
            return None
        return MapSource(
            uri=uri,
            title=_optional_str(maps.get("title")),
            review_snippets=_review_snippets(maps.get("placeAnswerSources")),
        )
    return None


def _review_snippets(sources: Any) -> Tuple[str, ...]:
    # placeAnswerSources 在不同接口版本里可能是对象或对象列表
    if isinstance(sources, Mapping):
        sources = [sources]
    if not isinstance(sources, list):
        return ()
    snippets: List[str] = []
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        reviews = source.get("reviewSnippets")
        if not isinstance(reviews, list):
            continue
        for review in reviews:
            if not isinstance(review, Mapping):
                continue
            content = review.get("content") or review.get("review")
            if isinstance(content, str) and content.strip():
                snippets.append(content)
    return tuple(snippets)


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
