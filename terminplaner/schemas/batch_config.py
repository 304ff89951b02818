from pydantic import BaseModel, Field, ValidationError, validator
from typing import Optional, List, Dict, Any, Union
from ..core.exceptions import BadRequestError
from ..models.batch_config import RuleType, TargetType
from .availability import AvailabilityTemplate
from .topic import TopicTemplate
from .department import DepartmentBrief


ConfigTemplate = Union[TopicTemplate, AvailabilityTemplate]

TEMPLATE_MODELS = {
    RuleType.TOPIC: TopicTemplate,
    RuleType.AVAILABILITY: AvailabilityTemplate,
}


def parse_config_data(rule_type: Union[RuleType, str], data: Dict[str, Any]) -> ConfigTemplate:
    """Validate a batch payload against the template model of its rule type"""
    try:
        model = TEMPLATE_MODELS[RuleType(rule_type)]
    except ValueError:
        raise BadRequestError(f"Unknown rule type: {rule_type}")
    try:
        return model(**(data or {}))
    except ValidationError as e:
        raise BadRequestError(f"config_data does not match rule type {RuleType(rule_type).value}: {e}")


def template_to_json(template: ConfigTemplate) -> Dict[str, Any]:
    return template.model_dump(mode="json")


class BatchConfigCreate(BaseModel):
    name: str = Field(..., min_length=1)
    rule_type: RuleType
    target_type: TargetType = TargetType.USER
    config_data: Dict[str, Any]
    apply_to_future: bool = False
    user_ids: List[int] = []
    department_ids: List[int] = []

    @validator('config_data')
    def validate_config_data(cls, v, values):
        rule_type = values.get('rule_type')
        if rule_type is None:
            return v
        try:
            return template_to_json(parse_config_data(rule_type, v))
        except BadRequestError as e:
            raise ValueError(str(e))


class BatchConfigUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    target_type: Optional[TargetType] = None
    # Validated against the stored rule type by the service
    config_data: Optional[Dict[str, Any]] = None
    apply_to_future: Optional[bool] = None
    user_ids: Optional[List[int]] = None
    department_ids: Optional[List[int]] = None


class BatchConfigResponse(BaseModel):
    id: int
    name: str
    rule_type: str
    target_type: str
    config_data: Dict[str, Any]
    apply_to_future: bool
    departments: List[DepartmentBrief] = []
    user_ids: List[int] = []

    class Config:
        from_attributes = True
