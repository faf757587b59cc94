from .Errors import KubeFSError, NotFound, Unavailable, Invalid, AlreadyExists, PermissionDenied
from .KubeFS import KubeFS
from .kube.KubeConnection import KubeConnection
from .kube.Kinds import DEFAULT_KINDS, KNOWN_KINDS, parse_kinds
