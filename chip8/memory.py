""" Support classes around working with virtual "memory" in the CHIP-8 VM """

class MemoryException(Exception):
    pass

class Memory(object):
    MAX_BYTE = 0xFF

    def __init__(self, data):
        self._raw_data = bytearray(data)

    def _check_address(self,idx):
        if idx < 0 or idx >= len(self._raw_data):
            raise MemoryException('Address 0x%04x is outside of memory (0x0000-0x%04x)' % (idx, len(self._raw_data)-1))

    def word(self, idx):
        """ Return the big-endian word at the provided address """
        return (self[idx] << 8) | self[idx+1]

    def set_word(self,idx,val):
        """ Set the two-byte word at the given index to the (unsigned) integer value """
        self[idx] = (val & 0xFF00) >> 8
        self[idx+1] = val & 0x00FF

    def __len__(self):
        return len(self._raw_data)

    def __getitem__(self,idx):
        """ Return byte at the provided address """
        if isinstance(idx,slice):
            return self._raw_data[idx]
        self._check_address(idx)
        return self._raw_data[idx]

    def __setitem__(self,idx,val):
        """ Set byte at provided address. Slices are written as a block and must not change the memory size """
        if isinstance(idx,slice):
            start, stop, step = idx.indices(len(self._raw_data))
            if step != 1 or stop - start != len(val):
                raise MemoryException('Block write of %d bytes does not fit slice %s' % (len(val), idx))
            self._raw_data[idx] = bytearray(val)
            return
        self._check_address(idx)
        if val < 0 or val > Memory.MAX_BYTE:
            raise MemoryException('Storing non-byte value %d to 0x%04x' % (val, idx))
        self._raw_data[idx] = val

    def __str__(self):
        return ''.join(['%.2x' % x for x in self._raw_data])

    def dump(self, width=16,start_address=0):
        """ Return all memory as lines of hex, prefixed with the address of the first byte on each line """
        lines = []
        counter = 0
        length = len(self)
        while counter < length:
            row = []
            if width + counter > length:
                width = length-counter
            for i in range(0,width):
                row.append('%.2x' % self[counter+i])
            lines.append('%s %s' % ('%.4x' % (counter+start_address), ' '.join(row)))
            counter += width
        return lines
