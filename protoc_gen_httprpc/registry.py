import logging
import posixpath
import re
from typing import Dict, List, Optional, Iterable

from google.protobuf.compiler.plugin_pb2 import CodeGeneratorRequest
from google.protobuf.descriptor_pb2 import (
    FileDescriptorProto,
    DescriptorProto,
    EnumDescriptorProto,
    MethodDescriptorProto,
)

from protoc_gen_httprpc import extract, util
from protoc_gen_httprpc.descriptor import (
    PythonPackage,
    File,
    LinkedFile,
    Message,
    Enum,
    Field,
    Service,
    Method,
    Binding,
    Parameter,
    FieldPath,
    FieldPathComponent,
)
from protoc_gen_httprpc.errors import (
    NotFoundError,
    DuplicateSymbolError,
    InconsistentPackageError,
    AliasTakenError,
)

logger = logging.getLogger(__name__)

# {name}  {name.first}  {name=shelves/*}
_PATH_VAR = re.compile(r'\{([^}=]+)(?:=[^}]*)?\}')

# 生成的模块自己使用的名称, 引入 _pb2 模块时不能使用
RESERVED_NAMES = (
    'Any', 'Callable', 'Dict', 'Optional', 'Codec', 'CodecBuilder',
    'Handler', 'Options', 'with_routes', 'with_swagger',
    'self', 'srv', 'cdc', 'request', 'response', 'arg', 'grpc_resp', 'e',
    'c', 'route', 'routes', 'handler', 'options', 'opt', 'opts', 'apply',
)


class Registry:
    """
    由 CodeGeneratorRequest 构建的符号表

    load 分两个阶段: 先注册请求中所有文件的消息和枚举,
    再为要生成的文件链接服务, 这样方法可以引用其他文件中定义的消息
    """

    def __init__(self, prefix: str = '', pkg_map: Optional[Dict[str, str]] = None):
        # 完整消息名 -> Message
        self.msgs: Dict[str, Message] = {}
        # 完整枚举名 -> Enum
        self.enums: Dict[str, Enum] = {}
        # 文件路径 -> File
        self.files: Dict[str, File] = {}
        # 文件路径 -> LinkedFile, 只包含要生成的文件
        self.targets: Dict[str, LinkedFile] = {}
        # 加在生成的模块路径前面的前缀
        self.prefix = prefix
        # 用户指定的 文件路径 -> 包
        self.pkg_map: Dict[str, str] = dict(pkg_map or {})
        # 已被占用的 别名 -> 模块路径
        self.pkg_aliases: Dict[str, str] = {name: '' for name in RESERVED_NAMES}
        self._loaded = False

    def set_prefix(self, prefix: str):
        self.prefix = prefix

    def add_pkg_map(self, file: str, pkg: str):
        self.pkg_map[file] = pkg

    def load(self, request: CodeGeneratorRequest):
        if self._loaded:
            logger.debug('registry already loaded, ignoring')
            return

        for proto_file in request.proto_file:
            self._load_file(proto_file)

        target_pkg = None
        for name in request.file_to_generate:
            file = self.files.get(name)
            if file is None:
                raise NotFoundError(f'no such file: {name}')

            pkg = package_identity_name(file.proto)
            if target_pkg is None:
                target_pkg = pkg
            elif target_pkg != pkg:
                raise InconsistentPackageError(f'inconsistent package names: {target_pkg} {pkg}')

            self.targets[name] = self._load_services(file)

        self._loaded = True

    def _load_file(self, proto_file: FileDescriptorProto):
        """注册文件中的消息和枚举, 不处理服务"""
        if proto_file.name in self.files:
            raise DuplicateSymbolError(f'duplicate file: {proto_file.name}')

        pkg = PythonPackage(path=self.python_package_path(proto_file), name=default_package_name(proto_file))
        try:
            self.reserve_package_alias(pkg.name, pkg.path)
        except AliasTakenError:
            i = 0
            while True:
                alias = f'{pkg.name}_{i}'
                try:
                    self.reserve_package_alias(alias, pkg.path)
                except AliasTakenError:
                    i += 1
                    continue
                pkg.alias = alias
                break

        file = File(proto_file, pkg)
        self.files[proto_file.name] = file
        self._register_msg(file, [], proto_file.message_type)
        self._register_enum(file, [], proto_file.enum_type)

    def _register_msg(self, file: File, outers: List[str], msgs: Iterable[DescriptorProto]):
        for i, md in enumerate(msgs):
            m = Message(file, list(outers), md, i)
            fqmn = m.fqmn
            if fqmn in self.msgs:
                raise DuplicateSymbolError(f'duplicate message: {fqmn}')
            file.messages.append(m)
            self.msgs[fqmn] = m
            logger.debug('register name: %s', fqmn)

            self._register_msg(file, outers + [m.name], md.nested_type)
            self._register_enum(file, outers + [m.name], md.enum_type)

    def _register_enum(self, file: File, outers: List[str], enums: Iterable[EnumDescriptorProto]):
        for i, ed in enumerate(enums):
            e = Enum(file, list(outers), ed, i)
            fqen = e.fqen
            if fqen in self.enums:
                raise DuplicateSymbolError(f'duplicate enum: {fqen}')
            file.enums.append(e)
            self.enums[fqen] = e
            logger.debug('register enum name: %s', fqen)

    def _load_services(self, file: File) -> LinkedFile:
        """
        链接文件中的服务和方法

        必须在所有文件都完成 _load_file 之后调用
        """
        logger.debug('loading services from %s', file.name)
        linked = LinkedFile(file)
        for i, sd in enumerate(file.proto.service):
            svc = Service(linked, sd, i)
            for j, md in enumerate(sd.method):
                logger.debug('processing %s.%s', sd.name, md.name)
                svc.methods.append(self._new_method(svc, md, j))
            if not svc.methods:
                continue
            logger.debug('registered %s with %d method(s)', svc.name, len(svc.methods))
            linked.services.append(svc)
        return linked

    def _new_method(self, svc: Service, md: MethodDescriptorProto, index: int) -> Method:
        request_type = self.lookup_msg(svc.file.package, md.input_type)
        response_type = self.lookup_msg(svc.file.package, md.output_type)

        bindings = []
        http = extract.extract_api_options(md)
        if http is None:
            logger.debug('found non-target method: %s.%s', svc.name, md.name)
        else:
            for rule in [http] + list(http.additional_bindings):
                bindings.append(self._new_binding(request_type, rule))

        return Method(svc, md, index, request_type, response_type, bindings)

    def _new_binding(self, request_type: Message, rule) -> Binding:
        verb, path, body, response_body = extract.binding_from_rule(rule)
        params = []
        for name in _PATH_VAR.findall(path):
            name = name.strip()
            params.append(Parameter(name, self.resolve_field_path(request_type, name)))
        return Binding(verb, path, body, response_body, params)

    def lookup_msg(self, location: str, name: str) -> Message:
        """
        查找消息

        name 以'.'开头时直接查找, 否则从 location 开始由内向外逐层尝试
        """
        logger.debug('lookup %s from %s', name, location)
        m = _lookup(self.msgs, location, name)
        if m is None:
            raise NotFoundError(f'no message found: {name}')
        return m

    def lookup_enum(self, location: str, name: str) -> Enum:
        logger.debug('lookup enum %s from %s', name, location)
        e = _lookup(self.enums, location, name)
        if e is None:
            raise NotFoundError(f'no enum found: {name}')
        return e

    def lookup_file(self, name: str) -> File:
        f = self.files.get(name)
        if f is None:
            raise NotFoundError(f'no such file given: {name}')
        return f

    def lookup_target(self, name: str) -> LinkedFile:
        f = self.targets.get(name)
        if f is None:
            raise NotFoundError(f'file is not a generation target: {name}')
        return f

    def lookup_field_message(self, field: Field) -> Message:
        """解析消息类型字段引用的消息, 相对名称从字段所在消息的作用域开始查找"""
        if not field.is_message:
            raise NotFoundError(f'{field.message.fqmn}.{field.name} is not a message field')
        return self.lookup_msg(field.message.fqmn, field.type_name)

    def resolve_field_path(self, message: Message, path: str) -> FieldPath:
        """'name.first' -> FieldPath, 除最后一段外都必须是消息类型的字段"""
        components = []
        current = message
        names = path.split('.')
        for i, name in enumerate(names):
            if current is None:
                raise NotFoundError(f'{path}: {names[i - 1]} is not a message field')
            field = current.field_by_name(name)
            if field is None:
                raise NotFoundError(f'no field {name} in {current.fqmn}')
            components.append(FieldPathComponent(name, field))
            current = self.lookup_field_message(field) if field.is_message else None
        return FieldPath(components)

    def reserve_package_alias(self, alias: str, path: str):
        """
        占用一个别名

        同一路径重复占用直接返回; 别名已被其他路径占用时抛出 AliasTakenError
        """
        taken = self.pkg_aliases.get(alias)
        if taken is not None:
            if taken == path:
                return
            raise AliasTakenError(f'package name {alias} is already taken. Use another alias')
        self.pkg_aliases[alias] = path

    def python_package_path(self, f: FileDescriptorProto) -> str:
        """
        该文件生成的 _pb2 模块的引入路径

        优先级: 用户的 M 参数, 前缀加文件所在目录

        protoc 的 python 插件只按文件路径放置 _pb2 模块, 不理会 go_package
        """
        module = util.module_name(f.name)
        pkg = self.pkg_map.get(f.name)
        if pkg is not None:
            return util.join_module_path(self.prefix, pkg, module)

        return util.join_module_path(self.prefix, posixpath.dirname(f.name), module)

    def all_fqmns(self) -> List[str]:
        return sorted(self.msgs)

    def all_fqens(self) -> List[str]:
        return sorted(self.enums)


def _lookup(table: Dict[str, object], location: str, name: str):
    if name.startswith('.'):
        return table.get(name)

    location = location.strip('.')
    components = ['']
    if location:
        components.extend(location.split('.'))
    while components:
        fqn = '.'.join(components + [name])
        if fqn in table:
            return table[fqn]
        components.pop()
    return None


def package_identity_name(f: FileDescriptorProto) -> str:
    """
    文件所属包的标识

    一次调用中所有要生成的文件必须属于同一个包
    """
    if f.options.HasField('go_package'):
        gopkg = f.options.go_package
        gopkg = gopkg[gopkg.rfind('/') + 1:]
        sc = gopkg.find(';')
        if sc >= 0:
            gopkg = gopkg[sc + 1:]
        return util.sanitize_package_name(gopkg)

    if not f.HasField('package'):
        return util.base_name(f.name)
    return f.package


def default_package_name(f: FileDescriptorProto) -> str:
    """
    生成代码引入该文件模块时默认使用的名称, 可能需要换成 reserve_package_alias 得到的别名

    取 proto 包名, 没有包名时取文件名
    """
    if f.package:
        return util.sanitize_package_name(f.package)
    return util.sanitize_package_name(util.base_name(f.name))
