# Prints a greeting. Scripts see three globals: config, machine and gui.
print("Hello World!")
