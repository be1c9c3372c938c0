from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    brand_ids = serializers.SerializerMethodField()
    creator_id = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "name", "brand_ids", "creator_id", "created_at"]
        read_only_fields = fields

    def get_brand_ids(self, obj: User) -> list[int]:
        return list(obj.brand_memberships.values_list("brand_id", flat=True))

    def get_creator_id(self, obj: User) -> int | None:
        creator = getattr(obj, "creator", None)
        return creator.id if creator else None


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs: dict) -> dict:
        email = attrs.get("email")
        password = attrs.get("password")
        user = authenticate(request=self.context.get("request"), email=email, password=password)
        if not user:
            raise serializers.ValidationError("Invalid credentials")
        attrs["user"] = user
        return attrs
