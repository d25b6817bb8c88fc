from rest_framework import serializers

class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(error_messages={'required': 'Username is required', 'blank': 'Username is required'})
    password = serializers.CharField(trim_whitespace=False,
                                     error_messages={'required': 'Password is required', 'blank': 'Password is required'})

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v
