from chartcore.aggregate import Aggregator, MinMax, MinMaxData
from chartcore.api import chart
from chartcore.axis import ConfiguredAxis, LinearScales
from chartcore.chart import Chart
from chartcore.config import ChartConfig, load_config
from chartcore.errors import ChartDataError
from chartcore.model import DataModel
from chartcore.redraw import Flow, RedrawOptions, RedrawOrchestrator, RedrawPass, RenderLayer
from chartcore.series import ArcSlice, DataPoint, Series, XSlot
from chartcore.transition import RedrawBarrier, TimedTask, TransitionClock
from chartcore.values import BubbleValue, RangeValue

__all__ = [
    "Aggregator",
    "ArcSlice",
    "BubbleValue",
    "Chart",
    "ChartConfig",
    "ChartDataError",
    "ConfiguredAxis",
    "DataModel",
    "DataPoint",
    "Flow",
    "LinearScales",
    "MinMax",
    "MinMaxData",
    "RangeValue",
    "RedrawBarrier",
    "RedrawOptions",
    "RedrawOrchestrator",
    "RedrawPass",
    "RenderLayer",
    "Series",
    "TimedTask",
    "TransitionClock",
    "XSlot",
    "chart",
    "load_config",
]
