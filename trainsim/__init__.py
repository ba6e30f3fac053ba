"""時刻表駆動の列車位置シミュレータ"""

__version__ = "0.1.0"
