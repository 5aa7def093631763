"""
TubeMP3 — 视频转 MP3 服务

启动命令:
    python main.py
    或
    uvicorn main:app --host 0.0.0.0 --port 3000 --reload
"""
import logging
import shutil

import uvicorn

from tubemp3 import create_app
from tubemp3.config import LOG_DATEFMT, LOG_FORMAT, settings

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    datefmt=LOG_DATEFMT,
)

logger = logging.getLogger("tubemp3")

app = create_app()

if __name__ == "__main__":
    logger.info(f"🚀 TubeMP3 启动中 http://{settings.host}:{settings.port}")
    logger.info(f"📖 API 文档: http://127.0.0.1:{settings.port}/docs")
    logger.info(f"🎬 yt-dlp: {shutil.which(settings.ytdlp_binary) or '未安装 (将使用 yt_dlp 库)'}")
    logger.info(f"🎵 ffmpeg: {shutil.which(settings.ffmpeg_binary) or '未安装!'}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        reload=False,
    )
