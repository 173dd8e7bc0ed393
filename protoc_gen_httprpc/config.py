import logging
from dataclasses import dataclass, field
from typing import Dict

from protoc_gen_httprpc.errors import ParameterError

logger = logging.getLogger(__name__)

_TRUE = ('1', 't', 'true', 'yes')
_FALSE = ('0', 'f', 'false', 'no')


@dataclass
class Options:
    """插件参数  protoc --httprpc_out=import_prefix=foo,Mbar/baz.proto=pkg:."""

    # 加在由文件路径推导出的模块路径前面
    import_prefix: str = ''
    # 生成的处理器把 http 请求作为上下文传给服务实现
    request_context: bool = False
    # 保留, 目前没有使用
    allow_delete_body: bool = False
    # 文件路径 -> 包, 来自 M 参数
    pkg_map: Dict[str, str] = field(default_factory=dict)


def _parse_bool(name: str, value: str) -> bool:
    v = value.lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ParameterError(f'invalid value for {name}: {value}')


def parse_parameter(parameter: str) -> Options:
    """
    解析 'key=value' 或 'key' 以','分隔的参数

    以'M'开头的键是 文件路径 -> 包 的映射
    """
    opts = Options()
    for p in parameter.split(','):
        p = p.strip()
        if not p:
            continue

        name, sep, value = p.partition('=')
        if sep and name.startswith('M'):
            opts.pkg_map[name[1:]] = value
            continue

        if name == 'import_prefix':
            opts.import_prefix = value
        elif name in ('request_context', 'allow_delete_body'):
            setattr(opts, name, _parse_bool(name, value) if sep else True)
        else:
            raise ParameterError(f'cannot set flag {p}')
        logger.debug('parameter %s=%s', name, value)

    return opts
