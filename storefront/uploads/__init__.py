"""
Upload admission control for product images.
"""

from storefront.uploads.admission import (
    ALLOWED_EXTENSIONS,
    INVALID_FILE_TYPE,
    UPLOAD_FAILED,
    UploadDescriptor,
    UploadPolicy,
    admit_upload,
    check_upload,
    file_too_large,
    forward,
    read_bounded,
)

__all__ = [
    "ALLOWED_EXTENSIONS",
    "INVALID_FILE_TYPE",
    "UPLOAD_FAILED",
    "UploadDescriptor",
    "UploadPolicy",
    "admit_upload",
    "check_upload",
    "file_too_large",
    "forward",
    "read_bounded",
]
