"""输入校验 -- 将 pydantic 校验失败统一转换为 ValidationError"""

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from ..exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model(model_cls: type[ModelT], data: Any) -> ModelT:
    """按 model_cls 校验输入

    Args:
        model_cls: 目标输入模型（TaskCreate / TaskPatch / ...）
        data: 原始输入（dict 或已构造的模型实例）

    Returns:
        校验通过的模型实例

    Raises:
        ValidationError: 输入形状错误或必填字段为空
    """
    if isinstance(data, model_cls):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"{model_cls.__name__} expects a JSON object")
    try:
        return model_cls.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        raise ValidationError(f"Invalid {model_cls.__name__}: {summary}", errors) from e
