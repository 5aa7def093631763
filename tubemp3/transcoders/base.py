"""
转码器抽象基类
"""
import os
from abc import ABC, abstractmethod
from subprocess import Popen
from typing import BinaryIO, Optional, Union

from tubemp3.models.audio import ConversionOptions
from tubemp3.utils.cancel import CancelToken

# 文件路径，或带真实文件描述符的二进制流（如上游进程的 stdout）
AudioSource = Union[str, os.PathLike, BinaryIO]


class Transcoder(ABC):
    """音频转码器基类"""

    @abstractmethod
    def ensure_available(self) -> str:
        """
        确认转码程序可用

        :return: 可执行文件的完整路径
        :raises TranscoderUnavailableError: 程序不存在
        """
        ...

    @abstractmethod
    def pipe(
        self,
        source: AudioSource,
        opts: ConversionOptions,
        sink: BinaryIO,
        cancel: Optional[CancelToken] = None,
        upstream: Optional[Popen] = None,
    ) -> None:
        """
        将 source 转码后写入 sink

        :param source: 输入文件路径或字节流
        :param opts: 转码参数
        :param sink: 输出流，只调用 write()
        :param cancel: 取消信号
        :param upstream: 产生 source 的上游进程，与转码进程一起等待 / 终止
        """
        ...
