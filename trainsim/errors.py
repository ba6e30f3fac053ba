# trainsim/errors.py
"""
リソース読み込み時のエラー定義。

いずれも起動時に致命的なエラーとして扱う（部分的な起動はしない）。
"""


class ResourceError(ValueError):
    """路線・駅データの不正"""


class MalformedRouteError(ResourceError):
    """Route 配列の形式不正（座標の対が揃っていない・想定外の型など）"""


class InvalidReferenceError(ResourceError):
    """存在しない駅IDを参照している"""


class MalformedScheduleError(ResourceError):
    """停車時刻文字列や週間運行表の形式不正"""
