# Should be all-lower
CROSSBOOT_ENTRYPOINT_NAME = "crossboot"
