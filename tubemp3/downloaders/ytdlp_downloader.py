"""
备用层级: 直接使用 yt_dlp 库
只用库解析视频信息和格式目录，音频流用 httpx 下载到临时文件后再交给 ffmpeg

YouTube 经常拒绝边下边转的流式访问，所以这里必须先完整落盘
"""
import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

import httpx
import yt_dlp
from yt_dlp.utils import YoutubeDLError

from tubemp3.config import settings
from tubemp3.downloaders.base import Downloader
from tubemp3.downloaders.format_selector import formats_from_info, select_best_audio_format
from tubemp3.exceptions import (
    ExtractionFailure,
    MetadataUnavailableError,
    NoAudioFormatError,
    TranscodeError,
    TranscoderUnavailableError,
)
from tubemp3.models.audio import AudioFormatDescriptor, ConversionOptions, VideoMetadata
from tubemp3.transcoders.base import Transcoder
from tubemp3.transcoders.ffmpeg import FFmpegTranscoder
from tubemp3.utils.cancel import CancelToken
from tubemp3.utils.files import transient_file
from tubemp3.utils.formatting import format_duration

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class YtdlpDownloader(Downloader):
    """
    yt_dlp 库 + httpx 下载 + ffmpeg 转码

    同时负责元数据解析（不下载媒体）
    """

    name = "yt_dlp"

    YDL_OPTS: Dict[str, Any] = {
        "noplaylist": True,
        "skip_download": True,
        "quiet": True,
        "no_warnings": True,
    }

    def __init__(
        self,
        transcoder: Optional[Transcoder] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        temp_dir: Optional[str] = None,
    ):
        """
        :param transcoder: 转码器，默认 FFmpegTranscoder
        :param http_client: 外部传入的 httpx 客户端（不会被关闭），None 时每次下载新建
        :param timeout: 下载超时（秒）
        :param temp_dir: 临时文件目录
        """
        self.transcoder = transcoder or FFmpegTranscoder()
        self.http_client = http_client
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.temp_dir = temp_dir or settings.temp_dir

    # ---------- 元数据 ----------

    def _extract_info(self, video_url: str) -> Dict[str, Any]:
        """调用 yt_dlp 解析视频信息（含格式目录），不下载"""
        with yt_dlp.YoutubeDL(self.YDL_OPTS) as ydl:
            info = ydl.extract_info(video_url, download=False)
        if not isinstance(info, dict) or not info.get("id"):
            raise MetadataUnavailableError(f"视频信息格式异常: {video_url}")
        return info

    def resolve_metadata(self, video_url: str) -> VideoMetadata:
        """
        获取视频标题、作者、时长和 ID

        :raises MetadataUnavailableError: 网络不可达 / 视频已删除 / 私有 / 年龄限制 / 响应异常
        """
        try:
            info = self._extract_info(video_url)
        except YoutubeDLError as e:
            raise MetadataUnavailableError(f"获取视频信息失败: {e}") from e

        metadata = VideoMetadata(
            title=info.get("title") or "Untitled",
            author=info.get("uploader") or info.get("channel") or "",
            duration=format_duration(info.get("duration") or 0),
            video_id=info["id"],
        )
        logger.info(f"[元数据] {metadata.title} ({metadata.duration}) by {metadata.author}")
        return metadata

    # ---------- 提取 ----------

    def extract(
        self,
        video_url: str,
        sink: BinaryIO,
        opts: ConversionOptions,
        cancel: CancelToken,
    ) -> None:
        try:
            self.transcoder.ensure_available()
        except TranscoderUnavailableError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER_MISSING, str(e)) from e

        cancel.raise_if_cancelled()

        try:
            info = self._extract_info(video_url)
        except (YoutubeDLError, MetadataUnavailableError) as e:
            raise ExtractionFailure(self.name, ExtractionFailure.NETWORK, f"获取视频信息失败: {e}") from e

        try:
            fmt = select_best_audio_format(formats_from_info(info))
        except NoAudioFormatError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.NO_AUDIO_FORMAT, str(e)) from e

        logger.info(
            f"[yt_dlp] 选中格式: id={fmt.format_id}, mime={fmt.mime_type}, bitrate={fmt.bitrate}"
        )

        with transient_file(directory=self.temp_dir) as temp_path:
            self._download(fmt, temp_path, cancel)
            try:
                self.transcoder.pipe(temp_path, opts, sink, cancel)
            except TranscoderUnavailableError as e:
                raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER_MISSING, str(e)) from e
            except TranscodeError as e:
                raise ExtractionFailure(self.name, ExtractionFailure.TRANSCODER, str(e)) from e

        logger.info(f"[yt_dlp] 提取完成: {video_url}")

    def _download(self, fmt: AudioFormatDescriptor, dest: Path, cancel: CancelToken) -> int:
        """把音频流完整下载到 dest，返回字节数"""
        client_ctx = (
            nullcontext(self.http_client)
            if self.http_client is not None
            else httpx.Client(timeout=self.timeout, follow_redirects=True)
        )
        total = 0
        try:
            with client_ctx as client:
                with client.stream("GET", fmt.url, headers=fmt.http_headers) as response:
                    response.raise_for_status()
                    with open(dest, "wb") as f:
                        for chunk in response.iter_bytes(CHUNK_SIZE):
                            cancel.raise_if_cancelled()
                            f.write(chunk)
                            total += len(chunk)
        except httpx.HTTPStatusError as e:
            raise ExtractionFailure(
                self.name,
                ExtractionFailure.NETWORK,
                f"下载失败 (HTTP {e.response.status_code})，YouTube 可能拒绝了该请求，建议安装 yt-dlp",
            ) from e
        except httpx.RequestError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.NETWORK, f"下载失败: {e}") from e
        except OSError as e:
            raise ExtractionFailure(self.name, ExtractionFailure.IO, f"写入临时文件失败: {e}") from e

        logger.info(f"[yt_dlp] 下载完成: {total / (1024 * 1024):.1f} MB -> {dest}")
        return total
