from .validation import TargetValidationRules, TargetValidator, validate_target_url

__all__ = ["TargetValidationRules", "TargetValidator", "validate_target_url"]
