"""FFmpegAudioAdapter: audio extraction via the ffmpeg executable."""

import os
import logging
import subprocess
from typing import Optional

from mediascribe.exceptions import ExtractionError
from mediascribe.ports.audio import AudioExtractionPort, SAMPLE_RATE

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 2000


class FFmpegAudioAdapter(AudioExtractionPort):
    def __init__(self, binary: str = "ffmpeg", temp_dir: Optional[str] = None):
        self.binary = binary
        self.temp_dir = temp_dir

    def build_command(
        self,
        input_path: str,
        output_path: str,
        start: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> list[str]:
        cmd = [self.binary]
        if start is not None:
            cmd += ["-ss", f"{start:.3f}"]
        cmd += ["-i", input_path]
        if duration is not None:
            cmd += ["-t", f"{duration:.3f}"]
        cmd += [
            "-ar", str(SAMPLE_RATE),
            "-ac", "1",
            "-c:a", "pcm_s16le",
            output_path,
            "-y",
        ]
        return cmd

    def extract(
        self,
        input_path: str,
        output_path: str,
        start: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> str:
        cmd = self.build_command(input_path, output_path, start=start, duration=duration)
        logger.debug(f"Running decoder: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            logger.error(f"Decoder {self.binary!r} could not be started: {e}")
            raise ExtractionError(f"Decoder {self.binary!r} not available: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            logger.error(f"Error extracting audio from {input_path}: {stderr}")
            if os.path.exists(output_path):
                os.unlink(output_path)
            raise ExtractionError(
                f"Decoder exited with status {result.returncode} for {input_path}",
                stderr=stderr,
            )
        return output_path

    def is_available(self) -> bool:
        try:
            result = subprocess.run([self.binary, "-version"], capture_output=True, text=True)
        except OSError:
            return False
        return result.returncode == 0
