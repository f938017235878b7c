from rest_framework import serializers
from .models import PlatformSetting, AuditLog, Tenant


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ['id', 'name', 'slug']


class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = '__all__'
        read_only_fields = ['id']

    def validate(self, attrs):
        warning = attrs.get('timer_warning_fraction', getattr(self.instance, 'timer_warning_fraction', 0.25))
        critical = attrs.get('timer_critical_fraction', getattr(self.instance, 'timer_critical_fraction', 0.10))
        if not 0 <= critical <= warning <= 1:
            raise serializers.ValidationError("Timer fractions must satisfy 0 <= critical <= warning <= 1.")
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    # This field fetches the email from the related User model
    actor_email = serializers.CharField(source='actor.email', read_only=True, default=None)
    actor_role = serializers.CharField(source='actor.role', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'actor', 'actor_email', 'actor_role', 'action', 'target_model', 'target_object_id', 'timestamp', 'details']
