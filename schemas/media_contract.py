# User value: This file keeps upload error codes stable so admins always see the same labels for the same problem.
MEDIA_KIND_IMAGE = "image"
MEDIA_KIND_VIDEO = "video"

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/quicktime", "video/webm")
ALLOWED_MIME_TYPES = ALLOWED_IMAGE_TYPES + ALLOWED_VIDEO_TYPES

ERROR_UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
ERROR_RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
ERROR_FILE_TOO_LARGE = "FILE_TOO_LARGE"
ERROR_INVALID_DIMENSIONS = "INVALID_DIMENSIONS"
ERROR_UPLOAD_ERROR = "UPLOAD_ERROR"
ERROR_VALIDATION_ERROR = "VALIDATION_ERROR"

ERROR_CODES = (
    ERROR_UNSUPPORTED_TYPE,
    ERROR_RATE_LIMIT_EXCEEDED,
    ERROR_FILE_TOO_LARGE,
    ERROR_INVALID_DIMENSIONS,
    ERROR_UPLOAD_ERROR,
    ERROR_VALIDATION_ERROR,
)

# Remaining provider requests below which every upload is refused.
RATE_LIMIT_FLOOR = 10

ACCESS_ACTION_MEDIA_UPLOAD = "MEDIA_UPLOAD"
ACCESS_ACTION_MEDIA_DELETE = "MEDIA_DELETE"
