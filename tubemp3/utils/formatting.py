"""
文件名与时长格式化
"""

INVALID_FILENAME_CHARS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|")


def sanitize_filename(name: str) -> str:
    """将文件系统非法字符逐个替换为下划线，其余字符（包括空格）保留"""
    for char in INVALID_FILENAME_CHARS:
        name = name.replace(char, "_")
    return name


def format_duration(seconds: float) -> str:
    """秒数格式化为 H:MM:SS（不足一小时为 M:SS）"""
    seconds = int(seconds or 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
