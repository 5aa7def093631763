"""
异常定义
所有 TubeMP3 异常都继承自 TubeMP3Error

层级失败 (ExtractionFailure) 只在提取后端内部流转，
两个层级都失败时汇总为 ConversionError 抛给调用方
"""
from typing import List, Optional


class TubeMP3Error(Exception):
    """TubeMP3 异常基类"""


class InvalidReferenceError(TubeMP3Error):
    """无法从输入中解析出视频 ID"""


class MetadataUnavailableError(TubeMP3Error):
    """视频信息不可用（网络不可达 / 已删除 / 私有 / 年龄限制 / 响应异常）"""


class NoAudioFormatError(TubeMP3Error):
    """视频没有可用的音频格式"""


class CancellationError(TubeMP3Error):
    """转换被取消"""


class SinkError(TubeMP3Error):
    """调用方提供的输出流拒绝写入，原始异常见 __cause__"""


class TranscodeError(TubeMP3Error):
    """转码进程 (ffmpeg) 失败"""

    def __init__(self, message: str, diagnostic: str = "", returncode: Optional[int] = None):
        self.diagnostic = diagnostic
        self.returncode = returncode
        super().__init__(message)


class TranscoderUnavailableError(TranscodeError):
    """转码程序不在 PATH 中"""

    def __init__(self, binary: str):
        self.binary = binary
        super().__init__(f"{binary} 不可用: 未在 PATH 中找到转码程序")


class UpstreamProcessError(TubeMP3Error):
    """上游提取进程非零退出（转码进程本身成功）"""

    def __init__(self, returncode: int, diagnostic: str = ""):
        self.returncode = returncode
        self.diagnostic = diagnostic
        message = f"提取进程退出码 {returncode}"
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)


class ExtractionFailure(TubeMP3Error):
    """单个提取层级的失败记录"""

    TOOL_MISSING = "tool-missing"
    PROCESS_EXIT = "process-exit"
    NETWORK = "network"
    IO = "io"
    NO_AUDIO_FORMAT = "no-audio-format"
    TRANSCODER = "transcoder"
    TRANSCODER_MISSING = "transcoder-missing"

    def __init__(self, tier: str, reason: str, detail: str = ""):
        self.tier = tier
        self.reason = reason
        self.detail = detail
        message = f"{tier} ({reason})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConversionError(TubeMP3Error):
    """所有提取层级均失败"""

    def __init__(self, failures: List[ExtractionFailure]):
        self.failures = list(failures)
        summary = "; ".join(str(f) for f in self.failures) or "没有可用的提取层级"
        super().__init__(f"音频转换失败: {summary}")

    @property
    def reasons(self) -> List[str]:
        return [f.reason for f in self.failures]
