"""
TubeMP3 命令行入口

用法:
    python cli.py https://youtube.com/watch?v=...
    python cli.py -o mysong.mp3 https://youtube.com/watch?v=...
    python cli.py -b 128k -c 2 https://youtube.com/watch?v=...
    python cli.py -i https://youtube.com/watch?v=...
"""
import logging
import signal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from tubemp3.config import LOG_DATEFMT, LOG_FORMAT
from tubemp3.exceptions import MetadataUnavailableError, TubeMP3Error
from tubemp3.models.audio import ConversionOptions, normalize_options
from tubemp3.services.convert_service import ConvertService
from tubemp3.utils.cancel import CancelToken
from tubemp3.utils.formatting import sanitize_filename

app = typer.Typer(
    name="tubemp3",
    help="下载视频音轨并转换为 MP3。",
    add_completion=False,
)
console = Console()


def _install_signal_handlers(cancel: CancelToken) -> dict:
    """Ctrl+C / SIGTERM 时取消转换，返回原来的处理函数"""

    def handler(signum, frame):
        console.print("\n[yellow]已中断，正在取消...[/yellow]")
        cancel.cancel()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, handler)
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


@app.command()
def main(
    url: str = typer.Argument(..., help="视频链接或 ID"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="输出文件名（默认使用视频标题）"),
    bitrate: str = typer.Option("64k", "--bitrate", "-b", help="音频码率，如 64k / 128k / 192k"),
    sample_rate: int = typer.Option(22050, "--sample-rate", "-r", help="采样率 Hz，如 22050 / 44100"),
    channels: int = typer.Option(1, "--channels", "-c", help="声道数: 1 单声道 / 2 立体声"),
    info_only: bool = typer.Option(False, "--info", "-i", help="只显示视频信息，不下载"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """下载视频并保存为 MP3 文件。"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    try:
        opts = normalize_options(
            ConversionOptions(sample_rate=sample_rate, channels=channels, bitrate=bitrate, format="mp3")
        )
    except ValueError as e:
        console.print(f"[red]参数错误: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    service = ConvertService()

    try:
        info = service.get_video_info(url)
    except MetadataUnavailableError as e:
        console.print(f"[red]获取视频信息失败: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"Title:    {escape(info.title)}")
    console.print(f"Author:   {escape(info.author)}")
    console.print(f"Duration: {info.duration}")

    if info_only:
        return

    filename = Path(output or f"{sanitize_filename(info.title)}.mp3")
    if filename.exists():
        console.print(f"[red]错误: 文件 '{escape(str(filename))}' 已存在[/red]")
        raise typer.Exit(1)

    console.print(f"Output:   {escape(str(filename))}")
    console.print(f"Bitrate:  {opts.bitrate}, Sample Rate: {opts.sample_rate} Hz, Channels: {opts.channels}")
    console.print("[dim]下载中...[/dim]")

    cancel = CancelToken()
    previous = _install_signal_handlers(cancel)
    try:
        with open(filename, "wb") as f:
            service.convert_to_writer(url, f, opts, cancel)
    except (TubeMP3Error, OSError) as e:
        filename.unlink(missing_ok=True)
        console.print(f"[red]下载失败: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        _restore_signal_handlers(previous)

    console.print("[green]✓[/green] 完成")


if __name__ == "__main__":
    app()
