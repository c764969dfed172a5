# pagetrans/cli/__init__.py
"""pagetrans 命令行接口。"""

from pagetrans.cli.main import app

__all__ = ["app"]
