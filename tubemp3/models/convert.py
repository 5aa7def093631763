"""
转换 API 请求 / 响应模型
"""
from pydantic import BaseModel

from tubemp3.models.audio import VideoMetadata


class VideoInfoResponse(BaseModel):
    """视频元数据"""
    title: str
    author: str
    duration: str
    video_id: str

    @classmethod
    def from_metadata(cls, info: VideoMetadata) -> "VideoInfoResponse":
        return cls(
            title=info.title,
            author=info.author,
            duration=info.duration,
            video_id=info.video_id,
        )
