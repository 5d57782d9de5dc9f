# Import models to make them available when importing from img2prompt.models
from img2prompt.models.async_task import AsyncTask  # noqa: F401

__all__ = ["AsyncTask"]
