import keyword
from typing import List, Optional

from google.protobuf.descriptor_pb2 import (
    FileDescriptorProto,
    DescriptorProto,
    EnumDescriptorProto,
    FieldDescriptorProto,
    ServiceDescriptorProto,
    MethodDescriptorProto,
)


class PythonPackage:
    """
    .proto 文件对应的 python 模块

    Args:
        path: protoc 为该文件生成的 _pb2 模块的完整引入路径  foo.bar.example_pb2
        name: 默认的引入名称
        alias: 当 name 已被其他模块占用时使用的别名, 本次生成中唯一
    """

    def __init__(self, path: str, name: str, alias: str = ''):
        self.path = path
        self.name = name
        self.alias = alias

    @property
    def import_name(self) -> str:
        return self.alias or self.name

    @property
    def import_line(self) -> str:
        """'from foo.bar import example_pb2 as foo_bar'"""
        parent, _, module = self.path.rpartition('.')
        if parent:
            return f'from {parent} import {module} as {self.import_name}'
        return f'import {module} as {self.import_name}'

    def __eq__(self, other):
        if not isinstance(other, PythonPackage):
            return NotImplemented
        return (self.path, self.name, self.alias) == (other.path, other.name, other.alias)

    def __hash__(self):
        return hash((self.path, self.name, self.alias))

    def __repr__(self):
        return f'PythonPackage({self.path!r}, {self.name!r}, {self.alias!r})'


class File:
    """已注册的文件, 只包含消息和枚举; 服务要等链接之后才有, 见 LinkedFile"""

    def __init__(self, proto: FileDescriptorProto, py_pkg: PythonPackage):
        self.proto = proto
        self.py_pkg = py_pkg
        self.messages: List['Message'] = []
        self.enums: List['Enum'] = []

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def package(self) -> str:
        return self.proto.package

    @property
    def proto2(self) -> bool:
        """未声明 syntax 时按 proto2 处理"""
        return not self.proto.HasField('syntax') or self.proto.syntax == 'proto2'

    def __repr__(self):
        return f'File({self.name!r})'


class LinkedFile:
    """完成链接的文件, 服务中方法的请求和响应类型都已解析"""

    def __init__(self, file: File):
        self.file = file
        self.services: List['Service'] = []

    @property
    def proto(self) -> FileDescriptorProto:
        return self.file.proto

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def package(self) -> str:
        return self.file.package

    @property
    def py_pkg(self) -> PythonPackage:
        return self.file.py_pkg

    @property
    def messages(self) -> List['Message']:
        return self.file.messages

    @property
    def enums(self) -> List['Enum']:
        return self.file.enums

    def __repr__(self):
        return f'LinkedFile({self.name!r})'


def _qualified_name(file: File, outers: List[str], name: str) -> str:
    components = ['']
    if file.package:
        components.append(file.package)
    components.extend(outers)
    components.append(name)
    return '.'.join(components)


class Message:
    def __init__(self, file: File, outers: List[str], proto: DescriptorProto, index: int):
        self.file = file
        # 外层消息名称, 由外到内
        self.outers = outers
        self.proto = proto
        self.index = index
        self.fields = [Field(self, fd) for fd in proto.field]

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def fqmn(self) -> str:
        """完整的消息名称  .foo.bar.Outer.Inner"""
        return _qualified_name(self.file, self.outers, self.name)

    def py_type(self) -> str:
        """生成代码中引用该消息类的表达式, 嵌套消息是外层类的属性"""
        return '.'.join([self.file.py_pkg.import_name] + self.outers + [self.name])

    def field_by_name(self, name: str) -> Optional['Field']:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def __repr__(self):
        return f'Message({self.fqmn!r})'


class Enum:
    def __init__(self, file: File, outers: List[str], proto: EnumDescriptorProto, index: int):
        self.file = file
        self.outers = outers
        self.proto = proto
        self.index = index

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def fqen(self) -> str:
        return _qualified_name(self.file, self.outers, self.name)

    def __repr__(self):
        return f'Enum({self.fqen!r})'


class Field:
    """
    消息中的字段

    type_name 保持 protoc 给出的原样, 按需通过 Registry.lookup_field_message 解析
    """

    def __init__(self, message: Message, proto: FieldDescriptorProto):
        self.message = message
        self.proto = proto

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def type(self) -> int:
        return self.proto.type

    @property
    def type_name(self) -> str:
        return self.proto.type_name

    @property
    def is_message(self) -> bool:
        return self.proto.type in (FieldDescriptorProto.TYPE_MESSAGE, FieldDescriptorProto.TYPE_GROUP)

    @property
    def is_enum(self) -> bool:
        return self.proto.type == FieldDescriptorProto.TYPE_ENUM

    @property
    def repeated(self) -> bool:
        return self.proto.label == FieldDescriptorProto.LABEL_REPEATED

    def __repr__(self):
        return f'Field({self.message.fqmn}.{self.name})'


class Service:
    def __init__(self, file: LinkedFile, proto: ServiceDescriptorProto, index: int):
        self.file = file
        self.proto = proto
        self.index = index
        self.methods: List['Method'] = []

    @property
    def name(self) -> str:
        return self.proto.name

    def __repr__(self):
        return f'Service({self.name!r})'


class Method:
    def __init__(self, service: Service, proto: MethodDescriptorProto, index: int,
                 request_type: Message, response_type: Message, bindings: List['Binding']):
        self.service = service
        self.proto = proto
        self.index = index
        self.request_type = request_type
        self.response_type = response_type
        # 主绑定在前, additional_bindings 按声明顺序在后
        self.bindings = bindings

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def client_streaming(self) -> bool:
        return self.proto.client_streaming

    @property
    def server_streaming(self) -> bool:
        return self.proto.server_streaming

    @property
    def unary(self) -> bool:
        return not self.client_streaming and not self.server_streaming

    @property
    def binding(self) -> Optional['Binding']:
        if self.bindings:
            return self.bindings[0]
        return None

    def __repr__(self):
        return f'Method({self.service.name}.{self.name})'


class FieldPathComponent:
    def __init__(self, name: str, target: Field):
        self.name = name
        self.target = target

    def rhs(self, expr: str) -> str:
        """取值表达式, 字段名与关键字冲突时只能用 getattr"""
        if keyword.iskeyword(self.name):
            return f'getattr({expr}, {self.name!r})'
        return f'{expr}.{self.name}'

    def lhs(self, expr: str) -> str:
        """路径中间一步的表达式, proto2 文件中使用访问器风格"""
        if self.target.message.file.proto2:
            return f'getattr({expr}, {self.name!r})'
        return self.rhs(expr)


class FieldPath:
    """从请求消息出发到某个字段的访问路径"""

    def __init__(self, components: List[FieldPathComponent]):
        self.components = components

    def __str__(self):
        return '.'.join(c.name for c in self.components)

    def __len__(self):
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def is_nested_proto3(self) -> bool:
        return len(self.components) > 1 and not self.components[0].target.message.file.proto2

    def rhs(self, msg_expr: str) -> str:
        expr = msg_expr
        last = len(self.components) - 1
        for i, component in enumerate(self.components):
            if i == last:
                expr = component.rhs(expr)
            else:
                expr = component.lhs(expr)
        return expr


class Parameter:
    """路径模板中的变量  /v1/{name.first}"""

    def __init__(self, name: str, field_path: FieldPath):
        self.name = name
        self.field_path = field_path

    def __repr__(self):
        return f'Parameter({self.name!r})'


class Binding:
    def __init__(self, verb: str, path: str, body: str = '', response_body: str = '',
                 params: Optional[List[Parameter]] = None):
        self.verb = verb
        self.path = path
        self.body = body
        self.response_body = response_body
        self.params = params or []

    def __repr__(self):
        return f'Binding({self.verb} {self.path})'
