"""ClientConfig + load_client_config 单元测试

验证环境变量映射、默认值与非法值降级。
"""

import pytest
from missionctl.client.config import ClientConfig, load_client_config
from pydantic import ValidationError

_ENV_VARS = ("MISSIONCTL_API_URL", "MISSIONCTL_API_TIMEOUT_S", "MISSIONCTL_AGENT_CLI")


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestClientConfig:
    """ClientConfig 数据模型测试"""

    def test_default_values(self):
        config = ClientConfig()
        assert config.api_base_url == "http://localhost:8000"
        assert config.timeout_s == 10
        assert config.agent_cli == "openclaw"

    def test_timeout_min_value(self):
        """超时最小值为 1"""
        with pytest.raises(ValidationError):
            ClientConfig(timeout_s=0)


class TestLoadClientConfig:
    """load_client_config() 环境变量映射测试"""

    def test_default_when_no_env(self, clean_env):
        config = load_client_config()
        assert config == ClientConfig()

    def test_env_overrides(self, clean_env):
        clean_env.setenv("MISSIONCTL_API_URL", "http://board.internal:9000/")
        clean_env.setenv("MISSIONCTL_API_TIMEOUT_S", "3")
        clean_env.setenv("MISSIONCTL_AGENT_CLI", "/usr/local/bin/openclaw")

        config = load_client_config()
        assert config.api_base_url == "http://board.internal:9000"
        assert config.timeout_s == 3
        assert config.agent_cli == "/usr/local/bin/openclaw"

    def test_invalid_timeout_falls_back(self, clean_env):
        """非数字超时不阻塞启动，回退默认值"""
        clean_env.setenv("MISSIONCTL_API_TIMEOUT_S", "soon")
        assert load_client_config().timeout_s == 10
