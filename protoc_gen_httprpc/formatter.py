import ast
import logging

from protoc_gen_httprpc.errors import RenderError

logger = logging.getLogger(__name__)


def format_source(source: str, filename: str = '<generated>') -> str:
    """
    整理模板输出

    去掉行尾空白, 连续空行最多保留两行, 文件以单个换行结尾,
    最后确认结果是合法的 python 代码
    """
    lines = []
    blank = 0
    for line in source.split('\n'):
        line = line.rstrip()
        if not line:
            blank += 1
            if blank > 2 or not lines:
                continue
        else:
            blank = 0
        lines.append(line)

    while lines and not lines[-1]:
        lines.pop()
    formatted = '\n'.join(lines) + '\n'

    try:
        ast.parse(formatted, filename=filename)
    except SyntaxError as e:
        logger.error('%s: %s\n%s', filename, e, formatted)
        raise RenderError(f'{filename}: generated code is not valid python: {e}') from e
    return formatted
