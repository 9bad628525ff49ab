from rest_framework import serializers

from .models import Swipe


class SwipeRequestSerializer(serializers.Serializer):
    target_user_id = serializers.IntegerField()
    action = serializers.ChoiceField(choices=[Swipe.DECISION_LIKE, Swipe.DECISION_PASS])


class SwipeSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    swiper_id = serializers.CharField(read_only=True)
    swipee_id = serializers.CharField(read_only=True)

    class Meta:
        model = Swipe
        fields = ['id', 'swiper_id', 'swipee_id', 'decision', 'created_at', 'updated_at']
