from datetime import date, datetime, timedelta
from typing import Any, Callable, Union

TimeLike = Union[datetime, date, int, float, str]
Amount = Union[int, timedelta, datetime, date, float, str]
Clock = Callable[[], datetime]
EndPointFunc = Callable[..., Any]
