"""protosync — keeps generated C# in step with the .proto files of a Unity project."""

__version__ = "0.3.0"
