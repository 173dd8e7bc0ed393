"""
生成的代码在运行时依赖的编解码接口

生成的处理器只通过这四个操作与 http 请求和响应交互,
具体使用 JSON-RPC 还是 REST 由调用方传入的实现决定
"""
from typing import Any, Callable, Protocol


class Codec(Protocol):

    def route(self, request: Any) -> str:
        """从请求中得到路由  '/example/getperson'"""
        ...

    def read_request(self, request: Any, out: Any) -> None:
        """将请求体解码到 out 中"""
        ...

    def write_response(self, response: Any, value: Any) -> None:
        ...

    def write_error(self, response: Any, error: BaseException) -> None:
        ...


CodecBuilder = Callable[[], Codec]
