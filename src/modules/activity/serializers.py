"""Activity DRF serializers (read only)."""

from __future__ import annotations

from rest_framework import serializers

from modules.activity.models import Activity


class ActivityActorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)
    email = serializers.EmailField(read_only=True)
    role = serializers.CharField(read_only=True)


class ActivitySerializer(serializers.ModelSerializer):
    actor = ActivityActorSerializer(read_only=True, allow_null=True)
    seller_ids = serializers.SerializerMethodField()

    class Meta:
        model = Activity
        fields = [
            "id",
            "actor",
            "role",
            "type",
            "target_type",
            "target_id",
            "description",
            "details",
            "seller_ids",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields

    def get_seller_ids(self, obj: Activity) -> list[str]:
        return [str(pk) for pk in obj.sellers.values_list("id", flat=True)]
