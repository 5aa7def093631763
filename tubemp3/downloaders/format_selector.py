"""
音频格式选择
从 yt-dlp 返回的格式目录中挑选一个用于下载的音频流

选择策略假定输出总会重新编码；支持直通输出时需要改为选最高码率
"""
from typing import Any, Dict, List, Sequence

from tubemp3.exceptions import NoAudioFormatError
from tubemp3.models.audio import AudioFormatDescriptor


def select_best_audio_format(catalog: Sequence[AudioFormatDescriptor]) -> AudioFormatDescriptor:
    """
    选择要提取的音频格式

    1. 优先纯音频格式，没有则退而求其次选任何带音轨的格式
    2. 在无画质标签的格式中选码率最低的（同码率取先出现的）
    3. 都带画质标签时取第一个

    :raises NoAudioFormatError: 目录中没有可用音频
    """
    formats = [f for f in catalog if f.is_audio_only]
    if not formats:
        formats = [f for f in catalog if f.carries_audio]
    if not formats:
        raise NoAudioFormatError("没有可用的音频格式")

    best = None
    for fmt in formats:
        if fmt.quality_label:
            continue
        if best is None or fmt.bitrate < best.bitrate:
            best = fmt

    return best or formats[0]


def formats_from_info(info: Dict[str, Any]) -> List[AudioFormatDescriptor]:
    """将 yt-dlp 的 info 字典转换为格式目录（保持原有顺序）"""
    catalog = []
    for f in info.get("formats") or []:
        url = f.get("url")
        if not url:
            continue

        acodec = f.get("acodec")
        vcodec = f.get("vcodec")
        # acodec 未知 (None) 时按可能带音轨处理
        has_audio = acodec != "none"
        has_video = bool(vcodec) and vcodec != "none"
        if not has_audio and not has_video:
            continue  # storyboard 等

        ext = f.get("ext") or ""
        height = f.get("height")
        quality_label = ""
        if has_video:
            quality_label = f"{height}p" if height else (f.get("format_note") or "")

        catalog.append(
            AudioFormatDescriptor(
                format_id=str(f.get("format_id", "")),
                url=url,
                bitrate=int((f.get("abr") or f.get("tbr") or 0) * 1000),
                quality_label=quality_label,
                mime_type=f"{'video' if has_video else 'audio'}/{ext}",
                # 声道数未知时至少标记为有音轨
                audio_channels=f.get("audio_channels") or (1 if has_audio else 0),
                ext=ext,
                http_headers=dict(f.get("http_headers") or {}),
            )
        )
    return catalog
