"""
TubeMP3 - 视频音轨提取与转码服务
"""
from fastapi import FastAPI

__version__ = "0.1.0"


def create_app() -> FastAPI:
    from tubemp3.routers import convert

    app = FastAPI(
        title="TubeMP3",
        description="输入视频链接，返回压缩后的音频 (默认 MP3)",
        version=__version__,
    )
    app.include_router(convert.router)
    return app
