"""python -m webcheck のエントリポイント。"""

from .cli import app

app()
