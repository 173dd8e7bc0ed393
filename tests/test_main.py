import io
import sys

from google.protobuf.compiler import plugin_pb2 as plugin

from protoc_gen_httprpc import main as plugin_main

from builders import message, method, service, file, request, get, example_file


class TestProcess:
    def test_success(self):
        response = plugin_main.process(request(example_file()))
        assert not response.HasField('error')
        assert [f.name for f in response.file] == ['example_pb2_http.py', 'example_pb2_http_router.py']
        assert response.supported_features == plugin.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    def test_missing_file(self):
        response = plugin_main.process(request(example_file(), targets=['missing.proto']))
        assert response.error == 'no such file: missing.proto'
        assert len(response.file) == 0

    def test_inconsistent_package(self):
        other = file('other.proto', package='other')
        response = plugin_main.process(request(example_file(), other))
        assert response.error == 'inconsistent package names: example other'
        assert len(response.file) == 0

    def test_bad_parameter(self):
        response = plugin_main.process(request(example_file(), parameter='bogus'))
        assert 'bogus' in response.error
        assert len(response.file) == 0

    def test_parameters_applied(self):
        req = request(example_file(), parameter='import_prefix=gen,request_context')
        response = plugin_main.process(req)
        adapter = response.file[0].content
        assert 'from gen import example_pb2 as example' in adapter
        assert 'self.srv.GetPerson(arg, request)' in adapter

    def test_pkg_map(self):
        req = request(example_file(), parameter='Mexample.proto=api/v1')
        adapter = plugin_main.process(req).file[0].content
        assert 'from api.v1 import example_pb2 as example' in adapter

    def test_no_target_service_is_not_an_error(self):
        f = file('internal.proto', package='example', messages=[message('Req')], services=[
            service('Internal', method('Do', '.example.Req', '.example.Req', get('/do'), server_streaming=True)),
        ])
        response = plugin_main.process(request(f))
        assert not response.HasField('error')
        assert len(response.file) == 0


class _Stdio:
    def __init__(self, data: bytes):
        self.buffer = io.BytesIO(data)


class TestMain:
    def _run(self, monkeypatch, data: bytes) -> plugin.CodeGeneratorResponse:
        stdout = _Stdio(b'')
        monkeypatch.setattr(sys, 'stdin', _Stdio(data))
        monkeypatch.setattr(sys, 'stdout', stdout)
        plugin_main.main()
        return plugin.CodeGeneratorResponse.FromString(stdout.buffer.getvalue())

    def test_round_trip(self, monkeypatch):
        response = self._run(monkeypatch, request(example_file()).SerializeToString())
        assert [f.name for f in response.file] == ['example_pb2_http.py', 'example_pb2_http_router.py']

    def test_malformed_request(self, monkeypatch):
        response = self._run(monkeypatch, b'\xff\xff\xff')
        assert response.error.startswith('failed to unmarshal code generator request')
        assert len(response.file) == 0

    def test_dump(self, monkeypatch, tmp_path):
        dump = tmp_path / 'request.bin'
        monkeypatch.setenv('PROTOC_GEN_HTTPRPC_DUMP', str(dump))
        data = request(example_file()).SerializeToString()
        self._run(monkeypatch, data)
        assert dump.read_bytes() == data
