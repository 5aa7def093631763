"""
首选层级: 调用外部 yt-dlp 程序
yt-dlp 把最佳纯音频流写到 stdout，直接接入 ffmpeg 的 stdin，全程不落盘
"""
import logging
import shutil
import subprocess
from typing import BinaryIO, List, Optional

from tubemp3.config import settings
from tubemp3.downloaders.base import Downloader
from tubemp3.exceptions import (
    ExtractionFailure,
    TranscodeError,
    TranscoderUnavailableError,
    UpstreamProcessError,
)
from tubemp3.models.audio import ConversionOptions
from tubemp3.transcoders.base import Transcoder
from tubemp3.transcoders.ffmpeg import FFmpegTranscoder
from tubemp3.utils.cancel import CancelToken

logger = logging.getLogger(__name__)


class YtdlpCliDownloader(Downloader):
    """yt-dlp 命令行 + ffmpeg 管道"""

    name = "yt-dlp"
    FORMAT_SELECTOR = "bestaudio[ext=m4a]/bestaudio"

    def __init__(
        self,
        transcoder: Optional[Transcoder] = None,
        binary: Optional[str] = None,
    ):
        self.transcoder = transcoder or FFmpegTranscoder()
        self.binary = binary or settings.ytdlp_binary

    def build_command(self, executable: str, video_url: str) -> List[str]:
        return [
            executable,
            "--no-warnings",
            "--quiet",
            "--no-playlist",
            "-f", self.FORMAT_SELECTOR,
            "-o", "-",
            video_url,
        ]

    def extract(
        self,
        video_url: str,
        sink: BinaryIO,
        opts: ConversionOptions,
        cancel: CancelToken,
    ) -> None:
        # 每次调用时探测，不在启动时缓存
        executable = shutil.which(self.binary)
        if not executable:
            raise ExtractionFailure(self.name, ExtractionFailure.TOOL_MISSING, f"未找到 {self.binary}")

        try:
            self.transcoder.ensure_available()
        except TranscoderUnavailableError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER_MISSING, str(e)) from e

        cancel.raise_if_cancelled()
        logger.info(f"[yt-dlp] 开始提取: {video_url}")

        try:
            proc = subprocess.Popen(
                self.build_command(executable, video_url),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.TOOL_MISSING, str(e)) from e

        # pipe() 返回前会回收 proc
        try:
            self.transcoder.pipe(proc.stdout, opts, sink, cancel, upstream=proc)
        except TranscoderUnavailableError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER_MISSING, str(e)) from e
        except TranscodeError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER, str(e)) from e
        except UpstreamProcessError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.PROCESS_EXIT, str(e)) from e

        logger.info(f"[yt-dlp] 提取完成: {video_url}")
