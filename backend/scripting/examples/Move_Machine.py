# Moves the machine's default head by a small offset and back.
# Needs a machine handle that provides move_by(x, y).
if machine is None:
    print("No machine attached")
else:
    machine.move_by(10, 10)
    machine.move_by(-10, -10)
    print("Moved", machine)
