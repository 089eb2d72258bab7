from canvas_layout.elements import create_element


def rect(x, y, w=100, h=100, element_id=None):
    return create_element("rectangle", x, y, w, h, element_id=element_id)


def label(x, y, text):
    return create_element("text", x, y, text=text)
