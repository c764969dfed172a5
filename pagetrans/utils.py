# pagetrans/utils.py
"""
本模块包含项目范围内的通用工具函数。
语言代码校验采用 langcodes 库。
"""

import re
import time
import unicodedata

from langcodes import Language
from langcodes.tag_parser import LanguageTagError

# 语言子标签应该由 2-3 个字母组成 (BCP 47)
LANGUAGE_SUBTAG_PATTERN = re.compile(r"^[a-zA-Z]{2,3}$")
_WHITESPACE_RUN = re.compile(r"\s+")

AUTO_LANG = "auto"


def validate_lang_codes(lang_codes: list[str]) -> None:
    """使用 `langcodes` 库校验语言代码列表中的每个代码是否符合 BCP 47 规范。

    特殊值 ``auto`` 表示由翻译服务自动检测源语言，总是被接受。
    """
    for code in lang_codes:
        if code == AUTO_LANG:
            continue
        try:
            lang = Language.get(code)
            if not lang.language or not LANGUAGE_SUBTAG_PATTERN.match(lang.language):
                raise LanguageTagError(
                    f"Tag '{code}' lacks a valid 2-3 letter language subtag."
                )
        except LanguageTagError as e:
            raise ValueError(f"提供的语言代码 '{code}' 格式无效。原因: {e}") from e


def primary_language(code: str) -> str:
    """返回语言代码的主语言子标签，例如 'zh-CN' -> 'zh'。"""
    if code == AUTO_LANG:
        return AUTO_LANG
    return (Language.get(code).language or code).lower()


def normalize_text(text: str) -> str:
    """为缓存键生成规范化文本：NFC 归一化、折叠空白、去除首尾空白。"""
    return _WHITESPACE_RUN.sub(" ", unicodedata.normalize("NFC", text)).strip()


def now() -> float:
    """当前的墙钟时间（Unix 秒）。缓存条目的时间戳需要跨进程可比较。"""
    return time.time()
