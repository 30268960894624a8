"""
使用uvicorn启动服务

示例:
  python -m paobai
"""
import os

import uvicorn


def main() -> None:
    reload = os.getenv("PAOBAI_RELOAD", "false").lower() == "true"
    host = os.getenv("PAOBAI_HOST", "0.0.0.0")
    port = int(os.getenv("PAOBAI_PORT", "8000"))
    uvicorn.run("paobai.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
