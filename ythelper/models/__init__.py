from .request import MediaRequest, MissingParameter
from .response import FormatDescriptor, MediaInfo, RawStats, StatusResponse

__all__ = ["FormatDescriptor", "MediaInfo", "MediaRequest", "MissingParameter", "RawStats", "StatusResponse"]
