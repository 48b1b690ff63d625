# coverage run --branch tests.py && coverage report -m
# python tests.py [-v] [name ...] runs only the tests/<name>_test.py modules given

import importlib.util
import inspect
import logging
import pathlib
import sys
import unittest

verbose = '-v' in sys.argv
wanted = { arg for arg in sys.argv[1:] if not arg.startswith ( '-' ) }

logging.basicConfig (
	stream = sys.stdout,
	level = logging.DEBUG if verbose else logging.WARNING,
	format = '[%(name)s %(levelname)s] %(message)s',
)

def load_module ( module_name, path ):
	spec = importlib.util.spec_from_file_location ( module_name, path )
	module = importlib.util.module_from_spec ( spec )
	spec.loader.exec_module ( module )
	return module

def collect ( folder, prefix ):
	loader = unittest.TestLoader()
	suite = unittest.TestSuite()
	for p in sorted ( pathlib.Path ( folder ).glob ( '*_test.py' ) ):
		name = p.name[:-len ( '_test.py' )]
		if wanted and name not in wanted:
			continue
		module = load_module ( prefix + p.stem, str ( p ) )
		for attr, x in vars ( module ).items():
			if attr[0] != '_' and inspect.isclass ( x ) and issubclass ( x, unittest.TestCase ) and x.__module__ == module.__name__:
				suite.addTest ( loader.loadTestsFromTestCase ( x ) )
	return suite

result = unittest.TextTestRunner ( verbosity = 2 if verbose else 1, failfast = True ).run ( collect ( 'tests', 'tests.' ) )
sys.exit ( 0 if result.wasSuccessful() else 1 )
