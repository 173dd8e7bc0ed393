import logging
from typing import List, Dict, Tuple

from google.protobuf.compiler.plugin_pb2 import CodeGeneratorResponse
from google.protobuf.descriptor_pb2 import FileDescriptorProto

from protoc_gen_httprpc import formatter, template, util
from protoc_gen_httprpc.descriptor import LinkedFile, Method, PythonPackage
from protoc_gen_httprpc.errors import NoTargetServiceError
from protoc_gen_httprpc.registry import Registry
from protoc_gen_httprpc.template import FileDesc, ServiceDesc, HandlerDesc, RouteDesc

logger = logging.getLogger(__name__)

ADAPTER = 'adapter'
ROUTER = 'router'

_SUFFIXES = {
    ADAPTER: '_pb2_http.py',
    ROUTER: '_pb2_http_router.py',
}

_RENDERERS = {
    ADAPTER: template.execute_adapter,
    ROUTER: template.execute_router,
}

# FileDescriptorProto.service = 6, ServiceDescriptorProto.method = 2
_SERVICE_PATH = 6
_METHOD_PATH = 2

DEFAULT_COMMENT = 'Missing associated documentation comment in .proto file.'


class Generator:

    def __init__(self, registry: Registry, use_request_context: bool = False, with_router: bool = True):
        self.registry = registry
        self.use_request_context = use_request_context
        self.with_router = with_router

    def generate(self, targets: List[LinkedFile]) -> List[CodeGeneratorResponse.File]:
        """先是所有文件的适配器, 然后是所有文件的路由"""
        files = self.build_files(targets, ADAPTER)
        if self.with_router:
            files.extend(self.build_files(targets, ROUTER))
        return files

    def build_files(self, targets: List[LinkedFile], kind: str) -> List[CodeGeneratorResponse.File]:
        files = []
        for file in targets:
            logger.info('Processing %s', file.name)
            try:
                code = self.generate_from(file, kind)
            except NoTargetServiceError as e:
                logger.info('%s: %s', file.name, e)
                continue

            name = util.output_name(file.name, _SUFFIXES[kind])
            gen = CodeGeneratorResponse.File()
            gen.name = name
            gen.content = formatter.format_source(code, name)
            files.append(gen)
        return files

    def generate_from(self, file: LinkedFile, kind: str) -> str:
        comments = build_comment(file.proto)
        seen = set()
        imports: List[PythonPackage] = []
        services: List[ServiceDesc] = []

        for svc in file.services:
            service_desc = ServiceDesc(
                name=svc.name,
                comment=comments.get((_SERVICE_PATH, svc.index), [DEFAULT_COMMENT]),
            )
            for m in svc.methods:
                if not eligible(m):
                    continue
                service_desc.handlers.append(HandlerDesc(
                    name=m.name,
                    arg=m.request_type.py_type(),
                    comment=comments.get((_SERVICE_PATH, svc.index, _METHOD_PATH, m.index), [DEFAULT_COMMENT]),
                    routes=build_routes(m),
                ))

                pkg = m.request_type.file.py_pkg
                if pkg.path not in seen:
                    seen.add(pkg.path)
                    imports.append(pkg)

            if service_desc.handlers:
                services.append(service_desc)

        if not services:
            raise NoTargetServiceError(file.name)

        info = FileDesc(
            package=file.py_pkg.name,
            source=file.name,
            imports=[pkg.import_line for pkg in imports],
            services=services,
            use_request_context=self.use_request_context,
        )
        return _RENDERERS[kind](info)


def eligible(m: Method) -> bool:
    """只支持带 http 绑定的一元调用"""
    if not m.unary:
        logger.debug('skip streaming method: %s.%s', m.service.name, m.name)
        return False
    return m.binding is not None


def build_routes(m: Method) -> List[RouteDesc]:
    routes = []
    for binding in m.bindings:
        params = [(p.name, p.field_path.rhs('arg')) for p in binding.params]
        routes.append(RouteDesc(binding.verb, binding.path, params))
    return routes


def build_comment(proto_file: FileDescriptorProto) -> Dict[Tuple[int, ...], List[str]]:
    """服务和方法的注释, 以 source_code_info 中的路径为键"""
    comment_dict: Dict[Tuple[int, ...], List[str]] = {}

    for location in proto_file.source_code_info.location:
        path = tuple(location.path)
        if not path or path[0] != _SERVICE_PATH:
            continue

        if len(path) != 2 and not (len(path) == 4 and path[2] == _METHOD_PATH):
            continue

        comment: List[str] = []

        def add_paragraph(v: List[str]):
            if len(comment) > 0:
                comment.append('')
            comment.extend(s.strip() for s in v)

        for paragraph in location.leading_detached_comments:
            add_paragraph(paragraph.rstrip('\n').split('\n'))
        if location.leading_comments:
            add_paragraph(location.leading_comments.rstrip('\n').split('\n'))
        if location.trailing_comments:
            add_paragraph(location.trailing_comments.rstrip('\n').split('\n'))

        if len(comment) > 0:
            comment_dict[path] = comment
        else:
            comment_dict[path] = [DEFAULT_COMMENT]

    return comment_dict
