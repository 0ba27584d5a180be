import os

import uvicorn

if __name__ == "__main__":
    # 开发环境默认热重载，设置 RELOAD=false 关闭
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),  # 默认只监听本地
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "true").lower() == "true",
        log_level="info"
    )
