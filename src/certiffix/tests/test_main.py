"""
测试 FastAPI 应用入口 main.py。
"""

from fastapi.testclient import TestClient

from src.certiffix.config import config
from src.certiffix.main import app


def test_lifespan_creates_layout(trust_store, monkeypatch):
    """测试应用启动时创建信任库目录"""
    monkeypatch.setattr(config, "config_dir", trust_store.base_dir)

    with TestClient(app) as client:
        assert trust_store.ca_dir.is_dir()
        assert trust_store.private_dir.is_dir()
        assert trust_store.public_dir.is_dir()

        response = client.get("/v1/certs/ca")
        assert response.status_code == 200
        assert response.json() == []
