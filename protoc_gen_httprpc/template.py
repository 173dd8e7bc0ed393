from typing import List, Tuple

import jinja2

from protoc_gen_httprpc.errors import RenderError


class RouteDesc:
    """方法上的一条 http 绑定"""

    def __init__(self, method: str, path: str, params: List[Tuple[str, str]] = None):
        self.method = method
        self.path = path
        # (路径变量, 请求对象上的取值表达式)
        self.params = params or []


class HandlerDesc:
    def __init__(self, name: str, arg: str, comment: List[str] = None, routes: List[RouteDesc] = None):
        self.name = name
        # 请求消息类  example.Query
        self.arg = arg
        self.comment = comment or []
        self.routes = routes or []


class ServiceDesc:
    def __init__(self, name: str, comment: List[str] = None, handlers: List[HandlerDesc] = None):
        self.name = name
        self.comment = comment or []
        self.handlers = handlers or []


class FileDesc:
    def __init__(self, package: str, source: str, imports: List[str], services: List[ServiceDesc],
                 use_request_context: bool = False):
        self.package = package
        self.source = source
        # 有序的引入语句, 顺序是生成结果的一部分
        self.imports = imports
        self.services = services
        self.use_request_context = use_request_context


def docstring(v: str) -> str:
    """转义后可以放进三引号字符串"""
    return v.replace('\\', '\\\\').replace('"""', '\\"\\"\\"')


_HEADER = '''\
# Code generated by protoc-gen-httprpc. DO NOT EDIT.
# source: {{ source }}
# package: {{ package }}
'''

_HANDLER = '''\
    def {{ handler.name }}(self, request, response):
        """
{% for line in handler.comment %}
        {{ line | docstring }}
{% endfor %}
{% for route in handler.routes %}

        {{ route.method | upper }} {{ route.path | docstring }}
{% for name, expr in route.params %}
            {{ name }} -> {{ expr }}
{% endfor %}
{% endfor %}
        """
        arg = {{ handler.arg }}()
        try:
            self.cdc.read_request(request, arg)
        except Exception as e:
            self.cdc.write_error(response, e)
            return

        try:
            grpc_resp = self.srv.{{ handler.name }}(arg, {{ 'request' if use_request_context else 'None' }})
        except Exception as e:
            self.cdc.write_error(response, e)
            return

        self.cdc.write_response(response, grpc_resp)
'''

_SERVER = '''\
class {{ class_name }}:
    """
{% for line in service.comment %}
    {{ line | docstring }}
{% endfor %}
    """

    def __init__(self, srv, cdc: Codec):
        self.srv = srv
        self.cdc = cdc
{% for handler in service.handlers %}

{% include 'handler' %}
{% endfor %}
'''

_ADAPTER = _HEADER + '''\
from protoc_gen_httprpc.codec import Codec

{% for line in imports %}
{{ line }}
{% endfor %}
{% for service in services %}
{% set class_name = 'HTTP' ~ service.name ~ 'Server' %}


{% include 'server' %}
{% endfor %}
'''

_ROUTER = _HEADER + '''\
from typing import Any, Callable, Dict, Optional

from protoc_gen_httprpc.codec import Codec, CodecBuilder

{% for line in imports %}
{{ line }}
{% endfor %}


Handler = Callable[[Any, Any], None]


class Options:

    def __init__(self):
        self.routes: Optional[Dict[str, Optional[Handler]]] = {}
        self.with_swagger = False

    def validate(self):
        if self.routes is None:
            raise ValueError('nil routes were provided')


def with_routes(routes: Dict[str, Optional[Handler]]):
    """
    为指定的路由设置处理函数

    处理函数为 None 时删除该路由
    """
    def apply(opts: Options):
        opts.routes = routes
    return apply


def with_swagger():
    def apply(opts: Options):
        opts.with_swagger = True
    return apply
{% for service in services %}


class {{ service.name }}Router:

    def __init__(self, srv, codec_builder: CodecBuilder, *opts):
        self.srv = _HTTP{{ service.name }}Server(srv, codec_builder())
        self.codec_builder = codec_builder

        options = Options()
        for opt in opts:
            opt(options)
        options.validate()

        self.routes: Dict[str, Handler] = {
{% for handler in service.handlers %}
            "/{{ service.name | lower }}/{{ handler.name | lower }}": self.srv.{{ handler.name }},
{% endfor %}
        }

        for route, handler in options.routes.items():
            if handler is None:
                self.routes.pop(route, None)
                continue
            self.routes[route] = handler

    def __call__(self, request, response):
        c = self.codec_builder()

        try:
            route = c.route(request)
        except Exception as e:
            c.write_error(response, e)
            return

        handler = self.routes.get(route)
        if handler is None:
            c.write_error(response, LookupError(f'no handler for route {route}'))
            return

        handler(request, response)
{% set class_name = '_HTTP' ~ service.name ~ 'Server' %}


{% include 'server' %}
{% endfor %}
'''

_env = jinja2.Environment(
    loader=jinja2.DictLoader({
        'handler': _HANDLER,
        'server': _SERVER,
        'adapter': _ADAPTER,
        'router': _ROUTER,
    }),
    undefined=jinja2.StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    autoescape=False,
)
_env.filters['docstring'] = docstring


def _execute(name: str, info: FileDesc) -> str:
    try:
        return _env.get_template(name).render(
            package=info.package,
            source=info.source,
            imports=info.imports,
            services=info.services,
            use_request_context=info.use_request_context,
        )
    except jinja2.TemplateError as e:
        raise RenderError(f'{info.source}: failed to render {name} template: {e}') from e


def execute_adapter(info: FileDesc) -> str:
    """每个服务生成一个 HTTP<Service>Server"""
    return _execute('adapter', info)


def execute_router(info: FileDesc) -> str:
    """每个服务生成一个 <Service>Router, 按编解码器给出的路由分发到 _HTTP<Service>Server"""
    return _execute('router', info)
