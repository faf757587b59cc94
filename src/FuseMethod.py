import errno
import logging
import threading

print_lock = threading.Lock()

# Turn exceptions into the negative errno fuse-python expects.
def FuseMethod(func):
	def wrapper(*a, **kw):
		try:
			return func(*a, **kw)
		except (IOError, OSError) as e:
			with print_lock:
				if getattr(e, 'errno', None) == errno.ENOENT:
					logging.debug(f"{func.__name__} failed", exc_info=True)
				else:
					logging.info(f"{func.__name__} failed", exc_info=True)

			if hasattr(e, 'errno') and isinstance(e.errno, int):
				# Standard operation
				return -e.errno
			return -errno.EACCES

		except Exception:
			with print_lock:
				logging.warning("Unexpected exception", exc_info=True)
			return -errno.EIO

	wrapper.__name__ = func.__name__
	wrapper.__doc__ = func.__doc__
	return wrapper
