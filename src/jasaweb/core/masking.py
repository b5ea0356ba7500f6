"""
Masking of sensitive values before they are written to the audit trail.

Audit rows keep old/new snapshots of changed records; credentials and
contact details in those snapshots are replaced before persistence.
"""

from typing import Any, Dict, Iterable, Optional, Set

import structlog

logger = structlog.get_logger(__name__)

BASELINE_KEYS = (
    "password",
    "password_hash",
    "token",
    "secret",
    "authorization",
    "api_key",
    "server_key",
    "signature_key",
)

PARTIAL_RULES: Dict[str, Dict[str, Any]] = {
    "email": {"mask_email": True},
    "phone": {"keep_suffix": 4},
    "qris_url": {"keep_prefix": 24},
}


class MaskingEngine:
    """
    Deep-copies dicts and lists, masking values under sensitive keys.

    Keys match case-insensitively, either exactly or as a substring
    (``new_password`` matches ``password``). Partial rules keep a prefix,
    a suffix or the email domain; everything else is masked fully.
    """

    def __init__(
        self,
        mask_keys: Optional[Iterable[str]] = None,
        partial_rules: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.partial_rules = dict(PARTIAL_RULES if partial_rules is None else partial_rules)
        keys = set(BASELINE_KEYS if mask_keys is None else mask_keys)
        self.mask_keys: Set[str] = {k.lower() for k in keys.union(self.partial_rules)}

    def mask(self, data: Any) -> Any:
        return self._deep_copy_and_mask(data)

    def _deep_copy_and_mask(self, obj: Any, path: str = "") -> Any:
        if isinstance(obj, dict):
            masked_dict = {}
            for key, value in obj.items():
                current_path = f"{path}.{key}" if path else str(key)

                if self._should_mask_key(str(key)):
                    masked_dict[key] = self._mask_value(str(key), value)
                    logger.debug("Masked sensitive field", field=key, path=current_path)
                else:
                    masked_dict[key] = self._deep_copy_and_mask(value, current_path)

            return masked_dict

        elif isinstance(obj, list):
            return [
                self._deep_copy_and_mask(item, f"{path}[{i}]")
                for i, item in enumerate(obj)
            ]

        else:
            return obj

    def _should_mask_key(self, key: str) -> bool:
        key_lower = key.lower()
        return any(mask_key in key_lower for mask_key in self.mask_keys)

    def _mask_value(self, key: str, value: Any) -> Optional[str]:
        if value is None:
            return None

        str_value = str(value)
        key_lower = key.lower()

        # Exact matches first
        for rule_key, rule_config in self.partial_rules.items():
            if key_lower == rule_key:
                return self._apply_partial_masking(str_value, rule_config)

        for rule_key, rule_config in self.partial_rules.items():
            if rule_key in key_lower:
                return self._apply_partial_masking(str_value, rule_config)

        return self._apply_full_masking(str_value)

    def _apply_partial_masking(self, value: str, rule_config: Dict[str, Any]) -> str:
        if not value:
            return "****"

        if rule_config.get("mask_email"):
            return self._mask_email(value)

        if "keep_prefix" in rule_config:
            prefix_len = rule_config["keep_prefix"]
            if len(value) <= prefix_len:
                return "****"
            return f"{value[:prefix_len]}****"

        if "keep_suffix" in rule_config:
            suffix_len = rule_config["keep_suffix"]
            if len(value) <= suffix_len:
                return "****"
            return f"****{value[-suffix_len:]}"

        return self._apply_full_masking(value)

    def _apply_full_masking(self, value: str) -> str:
        if len(value) <= 16:
            return "****"
        return f"****[{len(value)} chars]"

    def _mask_email(self, email: str) -> str:
        """budi.santoso@example.com -> b*****o@example.com"""
        if "@" not in email:
            return "****"

        local_part, domain = email.split("@", 1)

        if len(local_part) <= 2:
            masked_local = "****"
        else:
            middle_stars = "*" * min(5, len(local_part) - 2)
            masked_local = f"{local_part[0]}{middle_stars}{local_part[-1]}"

        return f"{masked_local}@{domain}"


# Global masking engine instance
_masking_engine: Optional[MaskingEngine] = None


def get_masking_engine() -> MaskingEngine:
    """Get or create the global masking engine instance."""
    global _masking_engine

    if _masking_engine is None:
        _masking_engine = MaskingEngine()

    return _masking_engine
