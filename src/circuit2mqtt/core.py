from .mixins.helpers import HelpersMixin
from .mixins.mqtt import MqttMixin
from .mixins.light import LightMixin
from .mixins.form import FormMixin
from .mixins.session import SessionMixin
from .mixins.loops import LoopsMixin
from .base import Base


class Circuit2Mqtt(
    HelpersMixin,
    LightMixin,
    FormMixin,
    SessionMixin,
    LoopsMixin,
    MqttMixin,
    Base,
):
    pass
