"""python -m salon_assistant"""

import asyncio

from dotenv import load_dotenv

# 加载.env文件中的环境变量（需在导入配置之前）
load_dotenv()

from salon_assistant.app import build_orchestrator  # noqa: E402
from salon_assistant.location.geolocation import create_location_provider  # noqa: E402
from salon_assistant.ui.console import ConsoleApp  # noqa: E402


def main() -> None:
    orchestrator = build_orchestrator()
    app = ConsoleApp(orchestrator)
    asyncio.run(app.run(create_location_provider()))


if __name__ == "__main__":
    main()
