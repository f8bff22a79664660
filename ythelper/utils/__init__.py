from .filename import attachment_header, sanitize_filename

__all__ = ["attachment_header", "sanitize_filename"]
