import logging
import os
import sys

from google.protobuf.compiler import plugin_pb2 as plugin
from google.protobuf.message import DecodeError

if __package__ is None and not hasattr(sys, "frozen"):
    path = os.path.realpath(os.path.abspath(__file__))
    sys.path.insert(0, os.path.dirname(os.path.dirname(path)))
from protoc_gen_httprpc import config
from protoc_gen_httprpc.errors import GeneratorError
from protoc_gen_httprpc.http import Generator
from protoc_gen_httprpc.registry import Registry

__version__ = "0.1.0"

logger = logging.getLogger("protoc_gen_httprpc")


def setup_logging():
    # stdout 用于返回结果, 日志只能写到 stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if os.getenv("PROTOC_GEN_HTTPRPC_DEBUG") else logging.INFO)


def dump_request(dump_file: str, data: bytes):
    """把 protoc 的原始请求写到文件, 之后可以重定向到标准输入单独调试插件"""
    logger.info("Writing input from protoc to: %s", dump_file)
    with open(dump_file, "wb") as fh:
        fh.write(data)


def process(request: plugin.CodeGeneratorRequest) -> plugin.CodeGeneratorResponse:
    """处理一次请求, 任何错误都只返回一条错误信息, 不返回文件"""
    response = plugin.CodeGeneratorResponse()
    response.supported_features = plugin.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    try:
        opts = config.parse_parameter(request.parameter)

        registry = Registry(prefix=opts.import_prefix, pkg_map=opts.pkg_map)
        registry.load(request)

        targets = [registry.lookup_target(name) for name in request.file_to_generate]
        files = Generator(registry, use_request_context=opts.request_context).generate(targets)
    except GeneratorError as e:
        logger.error("%s", e)
        response.error = str(e)
        return response

    response.file.extend(files)
    return response


def main() -> None:
    setup_logging()

    data = sys.stdin.buffer.read()
    dump_file = os.getenv("PROTOC_GEN_HTTPRPC_DUMP")
    if dump_file:
        dump_request(dump_file, data)

    logger.debug("Parsing code generator request")
    try:
        request = plugin.CodeGeneratorRequest.FromString(data)
    except DecodeError as e:
        logger.error("Failed to unmarshal code generator request: %s", e)
        response = plugin.CodeGeneratorResponse()
        response.error = f"failed to unmarshal code generator request: {e}"
    else:
        response = process(request)
        logger.info("Processed code generator request")

    sys.stdout.buffer.write(response.SerializeToString())


if __name__ == "__main__":
    main()
