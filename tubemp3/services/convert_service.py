"""
音频转换核心服务
编排整个流程: 链接规范化 → (元数据) → 提取层级状态机 → 输出

层级状态机:
    TRY_PREFERRED (yt-dlp 程序) → TRY_FALLBACK (yt_dlp 库) → FAIL
首选层级的失败只记录不抛出；取消和输出流错误立即抛出，不切换层级
"""
import io
import logging
from enum import Enum
from typing import BinaryIO, Dict, List, Optional

from tubemp3.downloaders.base import Downloader
from tubemp3.downloaders.ytdlp_cli_downloader import YtdlpCliDownloader
from tubemp3.downloaders.ytdlp_downloader import YtdlpDownloader
from tubemp3.exceptions import ConversionError, ExtractionFailure, MetadataUnavailableError
from tubemp3.models.audio import (
    ConversionOptions,
    ConversionResult,
    VideoMetadata,
    normalize_options,
)
from tubemp3.transcoders.base import Transcoder
from tubemp3.transcoders.ffmpeg import FFmpegTranscoder
from tubemp3.utils.cancel import CancelToken
from tubemp3.utils.formatting import sanitize_filename
from tubemp3.utils.video_url import normalize_video_url, require_video_id

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """提取状态"""
    TRY_PREFERRED = "try-preferred"
    TRY_FALLBACK = "try-fallback"
    FAIL = "fail"


NEXT_TIER: Dict[Tier, Tier] = {
    Tier.TRY_PREFERRED: Tier.TRY_FALLBACK,
    Tier.TRY_FALLBACK: Tier.FAIL,
}


class _TrackedSink:
    """记录已写入的字节数，层级失败后尽量撤回已写入的部分"""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.written = 0
        self._start = None
        seekable = getattr(sink, "seekable", None)
        if callable(seekable) and seekable():
            self._start = sink.tell()

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self.written += len(data)
        return len(data)

    def rewind(self) -> bool:
        """回到写入前的位置并截断，无法回退时返回 False"""
        if self.written == 0:
            return True
        if self._start is None:
            return False
        self._sink.seek(self._start)
        self._sink.truncate()
        self.written = 0
        return True


class ConvertService:
    """
    视频音频转换服务

    - get_video_info: 只取元数据
    - convert_to_writer: 流式写入调用方的 sink
    - convert: 缓冲模式，返回文件名和完整字节
    """

    def __init__(
        self,
        preferred: Optional[Downloader] = None,
        fallback: Optional[YtdlpDownloader] = None,
        transcoder: Optional[Transcoder] = None,
    ):
        transcoder = transcoder or FFmpegTranscoder()
        self.preferred: Downloader = preferred or YtdlpCliDownloader(transcoder=transcoder)
        self.fallback: YtdlpDownloader = fallback or YtdlpDownloader(transcoder=transcoder)
        self._tiers: Dict[Tier, Downloader] = {
            Tier.TRY_PREFERRED: self.preferred,
            Tier.TRY_FALLBACK: self.fallback,
        }

    def get_video_info(self, video_url: str) -> VideoMetadata:
        """获取视频元数据，不下载媒体"""
        return self.fallback.resolve_metadata(normalize_video_url(video_url))

    def convert_to_writer(
        self,
        video_url: str,
        sink: BinaryIO,
        opts: Optional[ConversionOptions] = None,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        """
        下载并转码，边转边写入 sink

        出错时 sink 中已写入的内容应视为无效（可回退的 sink 会被截断回写入前的位置）

        注意: 首选层级失败前已向不可 seek 的 sink 写出数据时，不再尝试备用层级
        （备用层级的输出会接在残缺数据之后），此时 ConversionError 只包含首选层级的失败

        :param video_url: 视频链接或 ID
        :param sink: 输出流，生命周期由调用方管理
        :param opts: 转码参数，None 使用默认值
        :param cancel: 取消信号
        :raises ConversionError: 所有层级均失败
        :raises CancellationError: 已取消
        :raises SinkError: sink 写入失败
        """
        if sink is None:
            raise ValueError("必须提供输出流 sink")

        resolved = normalize_options(opts)
        cancel = cancel or CancelToken()
        clean_url = normalize_video_url(video_url)
        tracked = _TrackedSink(sink)
        failures: List[ExtractionFailure] = []

        state = Tier.TRY_PREFERRED
        while state is not Tier.FAIL:
            downloader = self._tiers[state]
            cancel.raise_if_cancelled()
            try:
                downloader.extract(clean_url, tracked, resolved, cancel)
                logger.info(f"[转换] 完成: tier={downloader.name}, bytes={tracked.written}")
                return
            except ExtractionFailure as failure:
                logger.warning(f"[转换] {downloader.name} 失败: {failure}")
                failures.append(failure)

            if not tracked.rewind():
                # 已经写出的字节无法撤回，再换层级只会得到拼接的坏数据
                logger.error(f"[转换] {downloader.name} 已写出 {tracked.written} 字节，无法切换层级")
                break
            state = NEXT_TIER[state]

        raise ConversionError(failures)

    def convert(
        self,
        video_url: str,
        opts: Optional[ConversionOptions] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ConversionResult:
        """
        缓冲模式: 转换结果全部放在内存中

        大文件或服务端场景请使用 convert_to_writer
        """
        resolved = normalize_options(opts)
        try:
            base_name = self.get_video_info(video_url).title
        except MetadataUnavailableError as e:
            logger.warning(f"[转换] 元数据不可用，使用视频 ID 作为文件名: {e}")
            base_name = require_video_id(video_url)

        buffer = io.BytesIO()
        self.convert_to_writer(video_url, buffer, resolved, cancel)
        return ConversionResult(
            filename=f"{sanitize_filename(base_name)}.{resolved.format}",
            data=buffer.getvalue(),
        )
