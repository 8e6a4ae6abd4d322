# Prints what a script has to work with.
import sys

print("Python", sys.version.split()[0])
print("Script:", __file__)
print("config:", type(config).__name__)
print("machine:", type(machine).__name__)
print("gui:", type(gui).__name__)
if config is not None:
    print("Scripts directory:", config.scripts.directory)
