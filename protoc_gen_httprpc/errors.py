class GeneratorError(Exception):
    """所有会中止本次生成的错误的基类"""


class InputError(GeneratorError):
    """请求内容本身有问题"""


class NotFoundError(InputError):
    pass


class DuplicateSymbolError(InputError):
    pass


class InconsistentPackageError(InputError):
    pass


class AliasTakenError(InputError):
    pass


class ParameterError(InputError):
    pass


class ExtensionShapeError(GeneratorError):
    """方法选项中的扩展存在, 但不是预期的类型"""


class RenderError(GeneratorError):
    """模板绑定或格式化失败"""


class NoTargetServiceError(Exception):
    """文件中没有可生成的服务, 跳过即可, 不是错误"""

    def __init__(self, filename: str):
        super().__init__(f'no target service defined in the file: {filename}')
        self.filename = filename
