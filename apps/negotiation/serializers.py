from decimal import Decimal

from rest_framework import serializers

from apps.negotiation.models import NegotiationSession


class OfferSerializer(serializers.Serializer):
    """
    Input for an offer on a (sku, user) negotiation.

    ``offered_price`` is passed through untouched: an unusable price is a
    reject decision from the evaluator, not a validation error.
    """

    sku = serializers.CharField(max_length=100)
    user_id = serializers.CharField(max_length=128)
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    quantity = serializers.IntegerField(min_value=1, default=1)
    offered_price = serializers.JSONField(allow_null=True)

    ip_address = serializers.IPAddressField(required=False, allow_null=True)
    user_agent = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
    conversion_source = serializers.ChoiceField(
        choices=NegotiationSession.ConversionSource.choices, required=False
    )
    language = serializers.CharField(max_length=5, required=False)

    def validate_sku(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("SKU cannot be blank")
        return value


class CartItemSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)
    metadata = serializers.DictField(default=dict)


class CartSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)


class OrderPayloadSerializer(serializers.Serializer):
    """The parts of a platform order payload the reconciler reads."""

    id = serializers.JSONField(required=False)
    line_items = serializers.ListField(
        child=serializers.DictField(), default=list
    )
    total_price = serializers.CharField(required=False, allow_null=True)
    total = serializers.CharField(required=False, allow_null=True)


class DiscountMetadataSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    rounds = serializers.IntegerField()
    applied_at = serializers.DateTimeField(allow_null=True)


class DiscountDescriptorSerializer(serializers.Serializer):
    code = serializers.CharField()
    type = serializers.CharField()
    sku = serializers.CharField()
    original_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    discounted_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_pct = serializers.DecimalField(max_digits=5, decimal_places=2)
    quantity = serializers.IntegerField()
    expires_at = serializers.DateTimeField()
    session_id = serializers.CharField()
    metadata = DiscountMetadataSerializer()


class ActiveDiscountSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    sku = serializers.CharField()
    original_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    discounted_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_pct = serializers.DecimalField(max_digits=5, decimal_places=2)
    expires_at = serializers.DateTimeField()
    token = serializers.CharField()


class NegotiationSessionSerializer(serializers.ModelSerializer):
    discount_code = serializers.CharField(read_only=True)

    class Meta:
        model = NegotiationSession
        fields = [
            "session_id",
            "sku",
            "user_id",
            "quantity",
            "base_price",
            "current_round",
            "offer_history",
            "status",
            "final_price",
            "discount_token",
            "discount_code",
            "discount_applied",
            "accepted_at",
            "expires_at",
        ]
