"""
转换 API 路由

  1. GET  /              — 网页表单
  2. POST /convert       — 表单提交视频链接，流式返回 MP3
  3. GET  /api/info      — 查询视频元数据（不下载）
"""
import logging
import queue
import threading
from typing import Iterator, Optional
from urllib.parse import quote

from fastapi import APIRouter, Form, HTTPException, Query
from fastapi.responses import HTMLResponse, StreamingResponse

from tubemp3.exceptions import CancellationError, MetadataUnavailableError
from tubemp3.models.audio import ConversionOptions, normalize_options
from tubemp3.models.convert import VideoInfoResponse
from tubemp3.services.convert_service import ConvertService
from tubemp3.utils.cancel import CancelToken
from tubemp3.utils.formatting import sanitize_filename

logger = logging.getLogger(__name__)
router = APIRouter(tags=["转换"])

# 全局单例 service
_convert_service = ConvertService()

INDEX_HTML = """<!DOCTYPE html>
<html lang="zh">
<head>
  <meta charset="utf-8">
  <title>TubeMP3</title>
</head>
<body>
  <main>
    <h1>YouTube to MP3</h1>
    <p>粘贴视频链接，几秒钟即可转换为音频。</p>
    <form method="post" action="/convert">
      <input type="text" name="youtube-url" placeholder="Paste YouTube URL here..." autofocus required>
      <button type="submit">Convert</button>
    </form>
  </main>
</body>
</html>
"""

_DATA = "data"
_ERROR = "error"
_DONE = "done"


class _QueueSink:
    """把转码输出放入有界队列，消费端慢时阻塞写入（背压）"""

    def __init__(self, cancel: CancelToken, maxsize: int = 64):
        self.queue: "queue.Queue[tuple]" = queue.Queue(maxsize=maxsize)
        self.cancel = cancel

    def _put(self, item: tuple) -> bool:
        while not self.cancel.cancelled:
            try:
                self.queue.put(item, timeout=0.5)
                return True
            except queue.Full:
                continue
        return False

    def write(self, data: bytes) -> int:
        if not self._put((_DATA, bytes(data))):
            raise CancellationError("客户端已断开")
        return len(data)

    def finish(self, error: Optional[Exception] = None) -> None:
        """结束标记，客户端已断开时直接丢弃"""
        self._put((_ERROR, error) if error is not None else (_DONE, None))


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", errors="ignore").decode() or "audio.mp3"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


# ==================== API Endpoints ====================


@router.get("/", response_class=HTMLResponse, summary="网页表单")
def index():
    return INDEX_HTML


@router.get("/api/info", summary="查询视频信息", response_model=VideoInfoResponse)
def get_info(url: str = Query("", description="视频链接或 ID")):
    if not url.strip():
        raise HTTPException(status_code=400, detail="url is required")
    try:
        info = _convert_service.get_video_info(url.strip())
    except MetadataUnavailableError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return VideoInfoResponse.from_metadata(info)


@router.post("/convert", summary="转换为 MP3")
def convert(
    youtube_url: str = Form("", alias="youtube-url"),
    bitrate: Optional[str] = Form(None),
    sample_rate: Optional[int] = Form(None),
    channels: Optional[int] = Form(None),
):
    """
    下载视频音轨并流式返回

    第一块数据产生之前的错误返回 500；之后的错误只能中断连接
    """
    video_url = youtube_url.strip()
    if not video_url:
        raise HTTPException(status_code=400, detail="youtube-url is required")

    try:
        opts = normalize_options(
            ConversionOptions(sample_rate=sample_rate, channels=channels, bitrate=bitrate, format="mp3")
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        info = _convert_service.get_video_info(video_url)
    except MetadataUnavailableError as e:
        raise HTTPException(status_code=404, detail=str(e))

    cancel = CancelToken()
    sink = _QueueSink(cancel)
    worker = threading.Thread(
        target=_run_conversion,
        args=(video_url, sink, opts, cancel),
        name="tubemp3-convert",
        daemon=True,
    )
    worker.start()

    first = sink.queue.get()
    kind, payload = first
    if kind == _ERROR:
        logger.error(f"[API] 转换失败: {payload}")
        raise HTTPException(status_code=500, detail=f"conversion failed: {payload}")

    filename = f"{sanitize_filename(info.title)}.{opts.format}"
    return StreamingResponse(
        _iter_chunks(sink, cancel, first),
        media_type="audio/mpeg",
        headers={"Content-Disposition": _content_disposition(filename)},
    )


# ==================== 后台转换 ====================


def _run_conversion(video_url: str, sink: _QueueSink, opts: ConversionOptions, cancel: CancelToken):
    """后台线程执行转换，结果通过队列交给响应"""
    try:
        _convert_service.convert_to_writer(video_url, sink, opts, cancel)
    except CancellationError:
        logger.info(f"[API] 客户端已断开，转换取消: {video_url}")
        return
    except Exception as e:
        logger.error(f"[后台转换] 失败: url={video_url}, error={e}", exc_info=True)
        sink.finish(e)
        return
    sink.finish()


def _iter_chunks(sink: _QueueSink, cancel: CancelToken, first: tuple) -> Iterator[bytes]:
    item = first
    try:
        while True:
            kind, payload = item
            if kind == _DONE:
                return
            if kind == _ERROR:
                # 响应头已发出，只能中断连接
                raise payload
            yield payload
            item = sink.queue.get()
    finally:
        cancel.cancel()
