"""
基于 ffmpeg 的流式转码
负责把提取端的音频字节流接入 ffmpeg 的 stdin，再把 ffmpeg 的 stdout 写入调用方的 sink

并发模型:
- 调用线程轮询两个进程的退出状态与取消信号
- 线程池中的任务: 搬运 ffmpeg stdout -> sink、收集 ffmpeg stderr、收集上游 stderr
- 所有任务在返回前 join，所有进程在返回前回收
"""
import logging
import os
import shutil
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from typing import BinaryIO, List, Optional

from tubemp3.config import settings
from tubemp3.exceptions import (
    CancellationError,
    SinkError,
    TranscodeError,
    TranscoderUnavailableError,
    UpstreamProcessError,
)
from tubemp3.models.audio import ConversionOptions, normalize_options
from tubemp3.transcoders.base import AudioSource, Transcoder
from tubemp3.utils.cancel import CancelToken

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
POLL_INTERVAL = 0.1       # 秒
TERMINATE_GRACE = 3.0     # terminate 之后等待多久再 kill


def build_ffmpeg_command(executable: str, input_spec: str, opts: ConversionOptions) -> List[str]:
    """根据转码参数生成 ffmpeg 命令，输出写到 stdout"""
    return [
        executable,
        "-hide_banner",
        "-loglevel", "error",
        "-i", input_spec,
        "-vn",
        "-ar", str(opts.sample_rate),
        "-ac", str(opts.channels),
        "-b:a", opts.bitrate,
        "-f", opts.format,
        "-",
    ]


def terminate_process(proc: Optional[subprocess.Popen]) -> None:
    """终止并回收进程，已退出时什么都不做"""
    if proc is None or proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        logger.warning(f"[ffmpeg] 进程 {proc.pid} 未响应 terminate，强制 kill")
        proc.kill()
        proc.wait()


def _copy_to_sink(stream: BinaryIO, sink: BinaryIO) -> int:
    total = 0
    while True:
        chunk = stream.read1(CHUNK_SIZE)
        if not chunk:
            return total
        try:
            sink.write(chunk)
        except Exception as e:
            raise SinkError(f"输出流写入失败: {e}") from e
        total += len(chunk)


def _read_all(stream: BinaryIO) -> str:
    return stream.read().decode("utf-8", errors="replace").strip()


class FFmpegTranscoder(Transcoder):
    """
    ffmpeg 转码器

    输入可以是文件路径，也可以是上游进程（yt-dlp）的 stdout；
    两种情况都通过 stdout 输出编码后的音频
    """

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or settings.ffmpeg_binary

    def ensure_available(self) -> str:
        path = shutil.which(self.binary)
        if not path:
            raise TranscoderUnavailableError(self.binary)
        return path

    def pipe(
        self,
        source: AudioSource,
        opts: ConversionOptions,
        sink: BinaryIO,
        cancel: Optional[CancelToken] = None,
        upstream: Optional[subprocess.Popen] = None,
    ) -> None:
        cancel = cancel or CancelToken()
        proc: Optional[subprocess.Popen] = None
        try:
            resolved = normalize_options(opts)
            executable = self.ensure_available()
            cancel.raise_if_cancelled()

            if isinstance(source, (str, os.PathLike)):
                input_spec, stdin = os.fspath(source), subprocess.DEVNULL
            else:
                input_spec, stdin = "pipe:0", source

            cmd = build_ffmpeg_command(executable, input_spec, resolved)
            logger.info(f"[ffmpeg] 开始转码: input={input_spec}, {resolved}")
            logger.debug(f"[ffmpeg] {' '.join(cmd)}")

            try:
                proc = subprocess.Popen(
                    cmd,
                    stdin=stdin,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                raise TranscodeError(f"无法启动 ffmpeg: {e}") from e

            if upstream is not None and stdin is upstream.stdout:
                # 只保留 ffmpeg 持有的读端，ffmpeg 退出后 yt-dlp 才能收到 SIGPIPE
                upstream.stdout.close()

            diagnostic, upstream_diagnostic = self._run(proc, upstream, sink, cancel)
        finally:
            terminate_process(proc)
            terminate_process(upstream)
            if upstream is not None:
                for stream in (upstream.stdout, upstream.stderr):
                    if stream is not None:
                        stream.close()

        # 转码器的诊断信息优先于上游的退出码
        if proc.returncode != 0:
            if diagnostic:
                raise TranscodeError(
                    f"ffmpeg conversion failed: {diagnostic}", diagnostic, proc.returncode
                )
            raise TranscodeError(
                f"ffmpeg conversion failed: exit code {proc.returncode}", "", proc.returncode
            )

        if upstream is not None and upstream.returncode != 0:
            raise UpstreamProcessError(upstream.returncode, upstream_diagnostic)

        logger.info("[ffmpeg] 转码完成")

    def _run(
        self,
        proc: subprocess.Popen,
        upstream: Optional[subprocess.Popen],
        sink: BinaryIO,
        cancel: CancelToken,
    ) -> tuple:
        """运行任务组，等待进程全部退出，返回 (ffmpeg stderr, 上游 stderr)"""
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="tubemp3-pipe") as pool:
            pump = pool.submit(_copy_to_sink, proc.stdout, sink)
            drain = pool.submit(_read_all, proc.stderr)
            upstream_drain: Optional[Future] = None
            if upstream is not None and upstream.stderr is not None:
                upstream_drain = pool.submit(_read_all, upstream.stderr)

            try:
                self._wait(proc, upstream, pump, cancel)
            finally:
                # 先终止进程，管道关闭后任务才能结束，线程池才能 join
                terminate_process(proc)
                terminate_process(upstream)

        try:
            return drain.result(), upstream_drain.result() if upstream_drain else ""
        finally:
            for stream in (proc.stdout, proc.stderr, upstream.stderr if upstream else None):
                if stream is not None:
                    stream.close()

    @staticmethod
    def _wait(
        proc: subprocess.Popen,
        upstream: Optional[subprocess.Popen],
        pump: Future,
        cancel: CancelToken,
    ) -> None:
        processes = [p for p in (proc, upstream) if p is not None]
        while True:
            if cancel.cancelled:
                logger.info("[ffmpeg] 收到取消信号，终止所有子进程")
                raise CancellationError("转换已取消")

            if pump.done() and pump.exception() is not None:
                raise pump.exception()

            # ffmpeg 已失败时上游的输出没有意义，不再等它
            if proc.poll() not in (None, 0) and upstream is not None:
                terminate_process(upstream)

            if pump.done() and all(p.poll() is not None for p in processes):
                return

            cancel.wait(POLL_INTERVAL)
