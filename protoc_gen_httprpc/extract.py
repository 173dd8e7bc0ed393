import logging
from typing import Optional, Tuple

import google.api.annotations_pb2
from google.api.http_pb2 import HttpRule
from google.protobuf.descriptor_pb2 import MethodDescriptorProto

from protoc_gen_httprpc.errors import ExtensionShapeError

logger = logging.getLogger(__name__)


def extract_api_options(m: MethodDescriptorProto) -> Optional[HttpRule]:
    """
    取出方法上的 google.api.http 选项

    没有该选项时返回 None, 这样的方法不会通过 http 暴露
    """
    if not m.HasField('options'):
        return None
    if not m.options.HasExtension(google.api.annotations_pb2.http):
        return None

    http = m.options.Extensions[google.api.annotations_pb2.http]
    if not isinstance(http, HttpRule):
        raise ExtensionShapeError(f'extension is {type(http).__name__}; want an HttpRule')
    return http


def binding_from_rule(http: HttpRule) -> Tuple[str, str, str, str]:
    """HttpRule -> (method, path, body, response_body)"""
    pattern = http.WhichOneof('pattern')
    if pattern is None:
        raise ExtensionShapeError('http rule declares no pattern')

    if pattern == 'custom':
        if not http.custom.kind:
            raise ExtensionShapeError(f'custom http rule {http.custom.path} declares no kind')
        method = http.custom.kind
        path = http.custom.path
    else:
        method = pattern
        path = getattr(http, pattern)

    return method, path, http.body, http.response_body
