"""Tests for the racebench command line"""

import json

import pytest

from racebench.core.config import RunConfiguration
from racebench.core.harness import Orchestrator
from racebench.runners import cli
from racebench.servers import default_transports, wait_for_port


@pytest.fixture
def clean_env(monkeypatch):
    for name in ('NUM_SPINUPS', 'START_PORT', 'ADDRESS', 'DATA_SIZE', 'RACE_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)


class TestParser:
    """Test argument parsing"""

    def test_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.mode == 'server'
        assert args.instances is None
        assert args.start_port is None
        assert not args.quiet

    def test_client_options(self):
        args = cli.build_parser().parse_args([
            'client', '-n', '4', '--start-port', '9000', '--address', '127.0.0.1',
            '--data-size', '10', '--timeout', '2', '-o', 'out.json', '-q',
        ])

        assert args.mode == 'client'
        assert args.instances == 4
        assert args.start_port == 9000
        assert args.address == '127.0.0.1'
        assert args.data_size == '10'
        assert args.timeout == 2.0
        assert args.output == 'out.json'
        assert args.quiet

    def test_rejects_unknown_data_size(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(['client', '--data-size', '5'])


class TestMain:
    """Test the client entry point end to end"""

    def test_client_run_writes_outputs(self, clean_env, base_port, tmp_path, capsys):
        config = RunConfiguration(instance_count=2, base_port=base_port, bind_address='127.0.0.1')
        server = Orchestrator(config, transports=default_transports())
        server.serve()
        try:
            for _, ports in config.port_triples():
                for port in ports.as_tuple():
                    wait_for_port('127.0.0.1', port)

            exit_code = cli.main([
                'client',
                '--instances', '2',
                '--start-port', str(base_port),
                '--address', '127.0.0.1',
                '--output', str(tmp_path / 'results.json'),
                '--csv', str(tmp_path / 'samples.csv'),
                '--graphs', str(tmp_path / 'graphs'),
            ])
        finally:
            server.close()

        assert exit_code == 0
        data = json.loads((tmp_path / 'results.json').read_text())
        assert data['instances'] == 2
        assert (tmp_path / 'samples.csv').exists()
        assert len(list((tmp_path / 'graphs').glob('*.png'))) == 3
        assert "RACE RESULTS SUMMARY" in capsys.readouterr().out

    def test_environment_configuration(self, monkeypatch, base_port, tmp_path):
        """Test NUM_SPINUPS and friends configure the run when flags are absent"""
        monkeypatch.setenv('NUM_SPINUPS', '1')
        monkeypatch.setenv('START_PORT', str(base_port))
        monkeypatch.setenv('ADDRESS', '127.0.0.1')
        monkeypatch.setenv('DATA_SIZE', '1')
        config = RunConfiguration.from_env()
        server = Orchestrator(config, transports=default_transports())
        server.serve()
        try:
            for port in config.port_triple(0).as_tuple():
                wait_for_port('127.0.0.1', port)

            exit_code = cli.main(['client', '-q', '-o', str(tmp_path / 'results.json')])
        finally:
            server.close()

        assert exit_code == 0
        data = json.loads((tmp_path / 'results.json').read_text())
        assert data['config']['payload_size'] == '1kb'
        assert data['config']['base_port'] == base_port

    def test_invalid_configuration(self, clean_env, caplog):
        assert cli.main(['client', '--instances', '0']) == 1
        assert "[CONFIG]" in caplog.text

    def test_failed_race_exit_code(self, clean_env, base_port, caplog):
        """Test a run without servers fails instead of reporting statistics"""
        exit_code = cli.main([
            'client', '--start-port', str(base_port), '--address', '127.0.0.1', '--timeout', '2',
        ])

        assert exit_code == 1
        assert "[TRANSPORT]" in caplog.text
