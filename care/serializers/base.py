from collections.abc import Mapping

import bleach
from rest_framework import serializers


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


class AliasedSerializer(serializers.Serializer):
    """Accept snake_case aliases for camelCase fields.

    ``aliases`` maps an accepted alternative key to the declared field
    name, e.g. ``{'full_name': 'fullName'}``.  The declared name wins
    when both are sent.
    """
    aliases: dict = {}

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            data = data.dict() if hasattr(data, 'dict') else dict(data)
            for alias, name in self.aliases.items():
                if alias in data and name not in data:
                    data[name] = data.pop(alias)
        return super().to_internal_value(data)
