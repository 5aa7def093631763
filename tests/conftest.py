"""
Test configuration and shared fixtures.

ffmpeg / yt-dlp are replaced by small shell scripts so the pipeline can be
exercised without the real tools or network access.
"""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from tubemp3.models.audio import VideoMetadata

# Prints "ENC:" followed by its input, so tests can tell transcoded output apart.
FAKE_FFMPEG = r"""#!/bin/sh
if [ -n "$FAKE_FFMPEG_ARGS_FILE" ]; then
  echo "$*" > "$FAKE_FFMPEG_ARGS_FILE"
fi
if [ -n "$FAKE_FFMPEG_FAIL" ]; then
  cat > /dev/null
  echo "  Invalid data found when processing input  " >&2
  exit 1
fi
if [ -n "$FAKE_FFMPEG_SILENT_FAIL" ]; then
  cat > /dev/null
  exit 3
fi
input=""
while [ $# -gt 0 ]; do
  if [ "$1" = "-i" ]; then
    input="$2"
    shift
  fi
  shift
done
printf 'ENC:'
if [ "$input" = "pipe:0" ]; then
  exec cat
fi
exec cat "$input"
"""

FAKE_YTDLP = r"""#!/bin/sh
if [ -n "$FAKE_YTDLP_ARGS_FILE" ]; then
  echo "$*" > "$FAKE_YTDLP_ARGS_FILE"
fi
if [ -n "$FAKE_YTDLP_FAIL" ]; then
  printf '%s' "$FAKE_YTDLP_PARTIAL"
  echo "ERROR: Sign in to confirm you're not a bot" >&2
  exit 1
fi
if [ -n "$FAKE_YTDLP_SLOW" ]; then
  while true; do
    printf 'chunk'
    sleep 0.05
  done
fi
printf 'yt-dlp-audio'
"""

VIDEO_ID = "dQw4w9WgXcQ"


def write_script(path: Path, body: str) -> str:
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


@pytest.fixture
def fake_ffmpeg(bin_dir: Path) -> str:
    """Absolute path to the fake ffmpeg script."""
    return write_script(bin_dir / "ffmpeg", FAKE_FFMPEG)


@pytest.fixture
def fake_ytdlp(bin_dir: Path) -> str:
    """Absolute path to the fake yt-dlp script."""
    return write_script(bin_dir / "yt-dlp", FAKE_YTDLP)


@pytest.fixture
def missing_binary(tmp_path: Path) -> str:
    return str(tmp_path / "bin" / "does-not-exist")


@pytest.fixture
def work_temp_dir(tmp_path: Path) -> Path:
    """Temp dir for transient downloads, so tests can check it is left empty."""
    directory = tmp_path / "transient"
    directory.mkdir()
    return directory


@pytest.fixture
def sample_info() -> dict:
    """A trimmed yt_dlp info dict with a realistic format catalog."""
    return {
        "id": VIDEO_ID,
        "title": "My/Video: Title?",
        "uploader": "Test Channel",
        "duration": 212,
        "formats": [
            {
                "format_id": "sb0",
                "url": "https://media.example/storyboard",
                "ext": "mhtml",
                "acodec": "none",
                "vcodec": "none",
            },
            {
                "format_id": "251",
                "url": "https://media.example/251.webm",
                "ext": "webm",
                "acodec": "opus",
                "vcodec": "none",
                "abr": 130.5,
                "audio_channels": 2,
                "http_headers": {"User-Agent": "test-agent"},
            },
            {
                "format_id": "139",
                "url": "https://media.example/139.m4a",
                "ext": "m4a",
                "acodec": "mp4a.40.5",
                "vcodec": "none",
                "abr": 48.8,
                "audio_channels": 2,
            },
            {
                "format_id": "18",
                "url": "https://media.example/18.mp4",
                "ext": "mp4",
                "acodec": "mp4a.40.2",
                "vcodec": "avc1.42001E",
                "height": 360,
                "tbr": 500.0,
                "audio_channels": 2,
            },
        ],
    }


@pytest.fixture
def sample_metadata() -> VideoMetadata:
    return VideoMetadata(
        title="My/Video: Title?",
        author="Test Channel",
        duration="3:32",
        video_id=VIDEO_ID,
    )
