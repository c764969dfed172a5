# pagetrans/cache/keys.py
"""缓存键生成。键为确定性的 SHA-256 摘要，带有 `text` / `doc` 种类前缀。"""

import hashlib

from pagetrans.utils import AUTO_LANG, normalize_text

TEXT_KIND = "text"
DOCUMENT_KIND = "doc"
DEFAULT_TARGET_LANG = "zh"


def _digest(kind: str, subject: str, source_lang: str, target_lang: str) -> str:
    payload = "\x1f".join([kind, subject, source_lang, target_lang]).encode("utf-8")
    return f"{kind}:{hashlib.sha256(payload).hexdigest()}"


def text_key(
    text: str, source_lang: str | None = None, target_lang: str | None = None
) -> str:
    """单条文本译文的缓存键。文本先经过规范化，因此仅空白不同的文本共享同一个键。"""
    return _digest(
        TEXT_KIND,
        normalize_text(text),
        source_lang or AUTO_LANG,
        target_lang or DEFAULT_TARGET_LANG,
    )


def document_key(
    document_id: str, source_lang: str | None = None, target_lang: str | None = None
) -> str:
    """整篇文档产物的缓存键。"""
    return _digest(
        DOCUMENT_KIND,
        document_id.strip(),
        source_lang or AUTO_LANG,
        target_lang or DEFAULT_TARGET_LANG,
    )
