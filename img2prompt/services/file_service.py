import io
import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from img2prompt.core.config import settings
from img2prompt.core.exceptions import AppError, ValidationError

logger = logging.getLogger(__name__)


class FileService:
    def __init__(self, upload_folder: Optional[Path] = None) -> None:
        self._upload_folder = upload_folder

    @property
    def upload_folder(self) -> Path:
        return Path(self._upload_folder or settings.UPLOAD_FOLDER)

    def read_image(self, file: Optional[UploadFile]) -> bytes:
        """Read an uploaded image and check that it really is one.

        Args:
            file: Uploaded file from the multipart request

        Returns:
            bytes: Raw file content

        Raises:
            ValidationError: If no file was sent or it is not a readable image
        """
        if file is None or not file.filename:
            raise ValidationError("No image file provided")

        content = file.file.read()
        if not content:
            raise ValidationError("Uploaded image is empty")

        if file.content_type and not file.content_type.startswith("image/"):
            raise ValidationError(f"Unsupported file type: {file.content_type}")

        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning("Rejected upload %s: %s", file.filename, e)
            raise ValidationError(
                f"Uploaded file is not a valid image: {file.filename}"
            ) from e

        logger.info(
            "Received image %s (%d bytes, %s)",
            file.filename,
            len(content),
            file.content_type,
        )
        return content

    def stage(self, content: bytes, filename: str) -> Path:
        """Write image bytes where the worker can pick them up.

        Raises:
            AppError: If the file cannot be written
        """
        try:
            unique_dir = self.upload_folder / str(uuid.uuid4())
            unique_dir.mkdir(parents=True, exist_ok=True)
            filepath = unique_dir / Path(filename).name
            filepath.write_bytes(content)
        except OSError as e:
            logger.error("Error staging file %s: %s", filename, e, exc_info=True)
            raise AppError("Failed to save uploaded file") from e

        logger.info("File %s staged at %s", filename, filepath)
        return filepath

    def load(self, filepath: Path) -> bytes:
        return Path(filepath).read_bytes()

    def discard(self, filepath: Path) -> None:
        """Remove a staged file and its per-upload directory."""
        path = Path(filepath)
        if path.parent.parent == self.upload_folder:
            shutil.rmtree(path.parent, ignore_errors=True)
        else:
            path.unlink(missing_ok=True)
        logger.debug("Discarded staged file %s", path)


file_service = FileService()
