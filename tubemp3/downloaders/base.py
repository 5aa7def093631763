"""
提取层级抽象基类
每个层级独立完成 "获取音频 + 转码写入 sink"，失败时抛出 ExtractionFailure
"""
from abc import ABC, abstractmethod
from typing import BinaryIO

from tubemp3.models.audio import ConversionOptions
from tubemp3.utils.cancel import CancelToken


class Downloader(ABC):
    """音频提取层级基类"""

    # 层级名称，出现在日志与汇总错误中
    name: str = "base"

    @abstractmethod
    def extract(
        self,
        video_url: str,
        sink: BinaryIO,
        opts: ConversionOptions,
        cancel: CancelToken,
    ) -> None:
        """
        提取视频音轨并转码写入 sink

        :param video_url: 规范化后的视频链接
        :param sink: 调用方的输出流
        :param opts: 已合并默认值的转码参数
        :param cancel: 取消信号
        :raises ExtractionFailure: 本层级失败，由上层决定是否切换层级
        :raises CancellationError: 已取消，不切换层级
        :raises SinkError: 输出流写入失败，不切换层级
        """
        ...
