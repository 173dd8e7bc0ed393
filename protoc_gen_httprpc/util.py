import keyword
import posixpath


def sanitize_package_name(v: str) -> str:
    """将包名中不能出现在标识符里的字符替换为'_'"""
    v = v.replace(".", "_")
    v = v.replace("-", "_")
    if keyword.iskeyword(v):
        v += "_"
    return v


def base_name(filename: str) -> str:
    """'foo/bar/example.proto' -> 'example'"""
    return posixpath.splitext(posixpath.basename(filename))[0]


def module_name(filename: str) -> str:
    """protoc 的 python 插件为该文件生成的模块名"""
    return base_name(filename).replace("-", "_") + "_pb2"


def join_module_path(*parts: str) -> str:
    """用'.'连接非空的部分, 各部分中的'/'也被视为分隔符"""
    components = []
    for part in parts:
        for component in part.replace("/", ".").split("."):
            if component:
                components.append(component)
    return ".".join(components)


def output_name(filename: str, suffix: str) -> str:
    """'foo/my-api.proto' + '_pb2_http.py' -> 'foo/my_api_pb2_http.py'"""
    name = base_name(filename).replace("-", "_") + suffix
    return posixpath.join(posixpath.dirname(filename), name)
