"""
视频链接规范化
支持裸视频 ID 和带播放列表 / 时间戳等参数的完整链接
"""
import re
from typing import Optional
from urllib.parse import parse_qs, quote, urlparse

from tubemp3.exceptions import InvalidReferenceError

WATCH_URL = "https://www.youtube.com/watch?v="

# 11 位，字母数字 / 下划线 / 连字符
VIDEO_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")


def extract_video_id(value: str) -> Optional[str]:
    """从视频 ID 或链接的 v 参数中提取 ID，提取不到返回 None"""
    if VIDEO_ID_PATTERN.fullmatch(value):
        return value

    try:
        parsed = urlparse(value)
    except ValueError:
        return None
    return parse_qs(parsed.query).get("v", [None])[0]


def require_video_id(value: str) -> str:
    """同 extract_video_id，但提取不到时抛出 InvalidReferenceError"""
    video_id = extract_video_id(value)
    if not video_id:
        raise InvalidReferenceError(f"无法从输入中解析视频 ID: {value}")
    return video_id


def normalize_video_url(value: str) -> str:
    """
    规范化为只带视频 ID 的标准观看链接

    提取不到 ID 时原样返回，不做校验（由后续解析报错）

    :param value: 视频 ID 或链接
    :return: https://www.youtube.com/watch?v=<id>
    """
    video_id = extract_video_id(value)
    if not video_id:
        return value
    return WATCH_URL + quote(video_id, safe="")
