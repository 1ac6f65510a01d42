"""网关启动入口 -- python -m missionctl.gateway

环境变量:
    MISSIONCTL_HOST: 监听地址（默认 127.0.0.1）
    MISSIONCTL_PORT: 监听端口（默认 8000）
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "missionctl.gateway.main:app",
        host=os.environ.get("MISSIONCTL_HOST", "127.0.0.1"),
        port=int(os.environ.get("MISSIONCTL_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
