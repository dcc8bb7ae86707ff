"""Built-in action handlers paired with their models."""

from typing import List, Tuple, Type

from wayang.dsl import models
from wayang.dsl.registry import Handler

from .control import (
    do_action,
    error_action,
    for_each_action,
    if_action,
    log_action,
    log_store_action,
    not_action,
    store_action,
)
from .interactions import (
    blur_action,
    clear_action,
    click_action,
    eval_action,
    focus_action,
    input_action,
    navigate_action,
    press_action,
    scroll_into_view_action,
    select_all_action,
)
from .queries import (
    attribute_action,
    has_action,
    html_action,
    text_action,
    text_contains_action,
    text_equal_action,
    text_not_equal_action,
    visible_action,
)
from .waits import (
    sleep_action,
    wait_idle_action,
    wait_invisible_action,
    wait_load_action,
    wait_stable_action,
    wait_visible_action,
)

BUILTIN_HANDLERS: List[Tuple[Type[models.ActionBase], Handler]] = [
    (models.DoAction, do_action),
    (models.IfAction, if_action),
    (models.NotAction, not_action),
    (models.ForEachAction, for_each_action),
    (models.HasAction, has_action),
    (models.VisibleAction, visible_action),
    (models.TextAction, text_action),
    (models.HtmlAction, html_action),
    (models.AttributeAction, attribute_action),
    (models.TextEqualAction, text_equal_action),
    (models.TextNotEqualAction, text_not_equal_action),
    (models.TextContainsAction, text_contains_action),
    (models.ClickAction, click_action),
    (models.FocusAction, focus_action),
    (models.BlurAction, blur_action),
    (models.ClearAction, clear_action),
    (models.SelectAllAction, select_all_action),
    (models.ScrollIntoViewAction, scroll_into_view_action),
    (models.InputAction, input_action),
    (models.PressAction, press_action),
    (models.NavigateAction, navigate_action),
    (models.EvalAction, eval_action),
    (models.SleepAction, sleep_action),
    (models.WaitLoadAction, wait_load_action),
    (models.WaitIdleAction, wait_idle_action),
    (models.WaitVisibleAction, wait_visible_action),
    (models.WaitInvisibleAction, wait_invisible_action),
    (models.WaitStableAction, wait_stable_action),
    (models.StoreAction, store_action),
    (models.LogStoreAction, log_store_action),
    (models.LogAction, log_action),
    (models.ErrorAction, error_action),
]

__all__ = ["BUILTIN_HANDLERS"]
