import eons
import os
import logging
import logging.handlers

from libkubefs import KubeFS, KubeConnection, DEFAULT_KINDS, parse_kinds
from libkubefs.fs.Sidecar import DEFAULT_SIDECAR_PATTERNS

from .Utils import *
from .KubeFuse import KubeFuse

# KubeFS mounts a Kubernetes cluster to the local filesystem.
# Name is caps to make it executable per eons weirdness.
# NOTE: For thread safety, it is illegal to write to any KUBEFS args after it has been started.
class KUBEFS(eons.Executor):
	def __init__(this, name="KubeFS"):
		super().__init__(name)

		this.arg.kw.required.append("mount")

		this.arg.kw.optional["api_url"] = "http://127.0.0.1:8001" # e.g. `kubectl proxy`
		this.arg.kw.optional["kinds"] = ",".join(DEFAULT_KINDS)
		this.arg.kw.optional["cache_ttl"] = "1" # How long a directory listing stays fresh (seconds).
		this.arg.kw.optional["net_timeout"] = "30" # Network timeout (seconds).
		this.arg.kw.optional["size_estimate"] = "4096" # Size reported for documents that have not been read yet.
		this.arg.kw.optional["max_connections"] = 10
		this.arg.kw.optional["sidecar_patterns"] = ",".join(DEFAULT_SIDECAR_PATTERNS)
		this.arg.kw.optional["log_level"] = "warning"
		this.arg.kw.optional["daemon"] = False

		# Supported FUSE args
		this.arg.kw.optional["multithreaded"] = True
		this.arg.kw.optional["fuse_allow_other"] = False

		this.source = None
		this.kubefs = None

	# ValidateArgs is automatically called before Function, per eons.Functor.
	def ValidateArgs(this):
		super().ValidateArgs()
		this.ParseArgs()

	# Turn the raw string args into the values the filesystem takes.
	# Raises eons.MissingArgumentError naming the first bad one.
	def ParseArgs(this):
		try:
			this.kinds = parse_kinds(this.kinds)
		except ValueError as e:
			raise eons.MissingArgumentError(f"error: --kinds {this.kinds} is not valid: {e}")

		try:
			this.cache_ttl = parse_lifetime(this.cache_ttl)
		except ValueError:
			raise eons.MissingArgumentError(f"error: --cache-ttl {this.cache_ttl} is not a valid lifetime")

		try:
			this.net_timeout = parse_timeout(this.net_timeout)
		except ValueError:
			raise eons.MissingArgumentError(f"error: --net-timeout {this.net_timeout} is not a valid timeout")

		try:
			this.size_estimate = parse_size(this.size_estimate)
		except ValueError:
			raise eons.MissingArgumentError(f"error: --size-estimate {this.size_estimate} is not a valid size specifier")

		try:
			this.max_connections = int(this.max_connections)
			if (this.max_connections < 1):
				raise ValueError()
		except ValueError:
			raise eons.MissingArgumentError(f"error: --max-connections {this.max_connections} must be a positive integer")

		try:
			this.log_level = parse_log_level(this.log_level)
		except ValueError:
			raise eons.MissingArgumentError(f"error: --log-level {this.log_level} is not a valid log level")

		this.sidecar_patterns = parse_list(this.sidecar_patterns)

		if (not os.path.isdir(this.mount)):
			raise eons.MissingArgumentError(f"error: mount point {this.mount} is not an existing directory")


	def BeforeFunction(this):
		this.SetupLogging()

		this.source = KubeConnection(
			this.api_url,
			this.net_timeout,
			kinds=this.kinds,
			max_connections=this.max_connections
		)

		this.kubefs = KubeFS(
			this.source,
			kinds=this.kinds,
			cache_ttl=this.cache_ttl,
			size_estimate=this.size_estimate,
			sidecar_patterns=this.sidecar_patterns
		)


	def Function(this):
		server = KubeFuse(this.kubefs, dash_s_do='setsingle')
		server.multithreaded = this.multithreaded

		server.fuse_args.mountpoint = this.mount
		server.fuse_args.add('fsname=kubefs')
		server.fuse_args.add('atomic_o_trunc')
		if (this.fuse_allow_other):
			server.fuse_args.add('allow_other')

		if (not this.daemon):
			server.fuse_args.setmod('foreground')

		logging.info(f"Mounting {this.api_url} on {this.mount}")
		server.main()


	def SetupLogging(this):
		logger = logging.getLogger('')
		if (not this.daemon):
			# console logging only
			handler = logging.StreamHandler()
			fmt = logging.Formatter(fmt=("%(asctime)s kubefs[%(process)d]: " +
										 this.mount + " %(levelname)s: %(message)s"))
		else:
			# to syslog
			handler = logging.handlers.SysLogHandler(address='/dev/log')
			fmt = logging.Formatter(fmt=("kubefs[%(process)d]: " +
										 this.mount + ": %(levelname)s: %(message)s"))

		handler.setFormatter(fmt)
		logger.addHandler(handler)
		logger.setLevel(this.log_level)


def main():
	KUBEFS()()
