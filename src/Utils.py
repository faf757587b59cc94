import re
import logging

def parse_size(size_str):
	if (type(size_str) == int):
		return size_str

	multipliers = {
		'b': 1,
		'k': 1000**1,
		'kb': 1000**1,
		'm': 1000**2,
		'mb': 1000**2,
		'kib': 1024**1,
		'mib': 1024**2,
	}
	size_re = re.compile(r'^\s*(\d+)\s*(%s)?\s*$' % ("|".join(list(multipliers.keys())),),
						 re.I)

	m = size_re.match(size_str)
	if not m:
		raise ValueError("not a valid size specifier")

	size = int(m.group(1))
	multiplier = m.group(2)
	if multiplier is not None:
		try:
			size *= multipliers[multiplier.lower()]
		except KeyError:
			raise ValueError("invalid size multiplier")

	return size


# Seconds, as a float. Sub-second lifetimes are fine; the default directory ttl is 1s.
def parse_lifetime(lifetime_str):
	if (type(lifetime_str) in (int, float)):
		return float(lifetime_str)

	if lifetime_str.lower() in ('inf', 'infinity', 'infinite'):
		return 100*365*24*60*60

	try:
		lifetime = float(lifetime_str)
	except ValueError:
		raise ValueError("invalid lifetime specifier")
	if lifetime < 0:
		raise ValueError("lifetime cannot be negative")
	return lifetime


def parse_timeout(timeout_str):
	try:
		timeout = float(timeout_str)
	except (TypeError, ValueError):
		raise ValueError("invalid timeout")
	if not 0 < timeout < float('inf'):
		raise ValueError("timeout must be positive and finite")
	return timeout


def parse_log_level(log_level):
	try:
		return {'error': logging.ERROR,
				'warning': logging.WARNING,
				'info': logging.INFO,
				'debug': logging.DEBUG}[log_level]
	except KeyError:
		raise ValueError("invalid log level specifier")


def parse_list(list_str):
	if (isinstance(list_str, (list, tuple))):
		return list(list_str)
	return [item.strip() for item in list_str.split(',') if item.strip()]
