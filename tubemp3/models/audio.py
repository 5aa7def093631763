"""
音频相关数据模型
"""
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Optional


@dataclass(frozen=True)
class VideoMetadata:
    """视频元数据（不下载媒体）"""
    title: str         # 视频标题
    author: str        # 作者 / 频道
    duration: str      # 时长，如 "3:25"
    video_id: str      # 视频唯一 ID


@dataclass(frozen=True)
class AudioFormatDescriptor:
    """视频可用编码目录中的一项"""
    format_id: str
    url: str
    bitrate: int                   # bits/sec
    quality_label: str = ""        # 纯音频的自适应流为空，带画面的为 "720p" 等
    mime_type: str = ""            # 如 "audio/webm"
    audio_channels: int = 0
    ext: str = ""
    http_headers: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_audio_only(self) -> bool:
        return self.mime_type.startswith("audio/")

    @property
    def carries_audio(self) -> bool:
        return self.is_audio_only or self.audio_channels > 0


@dataclass(frozen=True)
class ConversionOptions:
    """转码参数，未设置的字段 (None / 0 / "") 使用默认值"""
    sample_rate: Optional[int] = None   # 采样率 Hz
    channels: Optional[int] = None      # 1 单声道 / 2 立体声
    bitrate: Optional[str] = None       # 目标码率，如 "64k"
    format: Optional[str] = None        # 输出格式，如 "mp3"


DEFAULT_OPTIONS = ConversionOptions(
    sample_rate=22050,
    channels=1,
    bitrate="64k",
    format="mp3",
)


def normalize_options(opts: Optional[ConversionOptions] = None) -> ConversionOptions:
    """
    将部分填写的参数与默认值合并，返回新的完整参数（不修改入参）

    :param opts: 调用方参数，None 表示全部使用默认值
    :return: 所有字段都已填充的 ConversionOptions
    :raises ValueError: 采样率或声道数非法
    """
    if opts is None:
        return DEFAULT_OPTIONS

    overrides = {key: value for key, value in asdict(opts).items() if value}
    resolved = replace(DEFAULT_OPTIONS, **overrides)

    if resolved.sample_rate <= 0:
        raise ValueError(f"采样率必须为正整数: {resolved.sample_rate}")
    if resolved.channels not in (1, 2):
        raise ValueError(f"声道数只能是 1 或 2: {resolved.channels}")
    return resolved


@dataclass
class ConversionResult:
    """缓冲模式的转换结果"""
    filename: str      # 已清理非法字符的文件名
    data: bytes        # 完整音频数据
