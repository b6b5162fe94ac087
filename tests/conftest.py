"""全局测试配置：在任何模块导入之前固定环境变量。"""

import os

# load_dotenv 不会覆盖已存在的环境变量，本地 .env 不影响测试。
os.environ["REPORT_PASSWORD"] = "papamiao1"
os.environ["CORS_ENABLED"] = "0"
