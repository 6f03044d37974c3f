from .media import MAX_IMAGE_BYTES, ImageUpload, LocalMediaStore, MediaStore

__all__ = ["ImageUpload", "LocalMediaStore", "MAX_IMAGE_BYTES", "MediaStore"]
