from .frames import DONE_SENTINEL, parse_frame
from .token import generate_token, split_api_key
from .zhipu import ZhipuCompletionStreamer

__all__ = [
    "DONE_SENTINEL",
    "ZhipuCompletionStreamer",
    "generate_token",
    "parse_frame",
    "split_api_key",
]
