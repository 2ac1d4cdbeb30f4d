"""
File management service for img2vid.

Stores downloaded videos as session-scoped files so each one can be handed
out as a local file:// URL. Files live only until their VideoHandle is
released.
"""
import uuid
from pathlib import Path

from img2vid.config import settings


class FileManager:
    """
    Manage session video files.

    Layout:
    - {base_dir}/{video_id}.mp4 - One downloaded video per generation call

    Implements path traversal protection to prevent directory escape attacks.
    """

    def __init__(self, base_dir: str | Path | None = None):
        """
        Initialize FileManager with base directory.

        Args:
            base_dir: Root directory for session videos.
                     If None, uses settings.storage.tmp_dir
        """
        if base_dir is None:
            base_dir = settings.storage.tmp_dir

        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def get_video_path(self, video_id: uuid.UUID | str, suffix: str = ".mp4") -> Path:
        """
        Resolve the path for a session video.

        Raises:
            ValueError: If video_id creates path outside base_dir (traversal attack)
        """
        video_path = (self.base_dir / f"{video_id}{suffix}").resolve()

        if not video_path.is_relative_to(self.base_dir):
            raise ValueError("Invalid video path")

        return video_path

    def save_video(self, data: bytes, video_id: uuid.UUID | None = None) -> Path:
        """
        Save downloaded video bytes.

        Args:
            data: MP4 video data
            video_id: Identifier for the file name; a new UUID if omitted

        Returns:
            Path to saved video file
        """
        filepath = self.get_video_path(video_id or uuid.uuid4())
        filepath.write_bytes(data)
        return filepath
