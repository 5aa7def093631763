"""
TubeMP3 配置模块
从 .env 文件加载所有配置项，提供全局单例 settings

注意: 这里只放进程级配置（服务地址、外部程序路径、超时等），
转码参数的默认值见 tubemp3.models.audio.DEFAULT_OPTIONS
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s"
LOG_DATEFMT = "%H:%M:%S"


@dataclass
class Settings:
    """全局配置"""

    # 服务
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))

    # 外部程序（调用时才在 PATH 中查找）
    ytdlp_binary: str = os.getenv("YTDLP_BINARY", "yt-dlp")    # 可选，缺失时走备用层级
    ffmpeg_binary: str = os.getenv("FFMPEG_BINARY", "ffmpeg")  # 必需

    # 备用层级下载
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "30"))
    temp_dir: Optional[str] = os.getenv("TEMP_DIR") or None    # 为空时使用系统临时目录


settings = Settings()
