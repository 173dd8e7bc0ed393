import pytest

from protoc_gen_httprpc import template
from protoc_gen_httprpc.errors import RenderError
from protoc_gen_httprpc.template import FileDesc, ServiceDesc, HandlerDesc, RouteDesc


def _info(**kwargs) -> FileDesc:
    handler = HandlerDesc('GetPerson', 'example.Query', ['Gets a person.'],
                          [RouteDesc('get', '/v1/{name.first}', [('name.first', 'arg.name.first')])])
    defaults = dict(
        package='example',
        source='example.proto',
        imports=['import example_pb2 as example'],
        services=[ServiceDesc('Example', ['Example service.'], [handler])],
    )
    defaults.update(kwargs)
    return FileDesc(**defaults)


class TestExecute:
    def test_adapter(self):
        content = template.execute_adapter(_info())
        assert '# package: example\n' in content
        assert 'class HTTPExampleServer:' in content
        assert '        Gets a person.\n' in content
        assert '        GET /v1/{name.first}\n' in content
        assert '            name.first -> arg.name.first\n' in content
        assert 'self.srv.GetPerson(arg, None)' in content

    def test_router_routes_are_lower_case(self):
        content = template.execute_router(_info())
        assert '"/example/getperson": self.srv.GetPerson,' in content

    def test_pure(self):
        assert template.execute_router(_info()) == template.execute_router(_info())

    def test_multiple_services_share_options(self):
        services = _info().services + [ServiceDesc('Other', [], [HandlerDesc('Ping', 'example.Query')])]
        content = template.execute_router(_info(services=services))
        assert content.count('class Options:') == 1
        assert 'class OtherRouter:' in content
        assert '"/other/ping": self.srv.Ping,' in content

    def test_binding_failure(self):
        with pytest.raises(RenderError, match='example.proto'):
            template.execute_adapter(_info(services=[object()]))

    def test_docstring(self):
        assert template.docstring('a """b""" \\') == 'a \\"\\"\\"b\\"\\"\\" \\\\'
