"""
临时文件管理
"""
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def transient_file(
    prefix: str = "tubemp3-",
    suffix: str = ".tmp",
    directory: Optional[str] = None,
) -> Iterator[Path]:
    """
    创建一个临时文件，退出作用域时无条件删除（成功 / 异常 / 取消）

    :param directory: 临时目录，None 为系统默认
    """
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
    os.close(fd)
    try:
        yield Path(path)
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        else:
            logger.debug(f"[临时文件] 已删除: {path}")
